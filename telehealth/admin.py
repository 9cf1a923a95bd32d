from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Appointment, AuditEvent, PushSubscription, Reminder, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'role', 'email', 'phone', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'first_name', 'last_name', 'email', 'phone')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role', 'phone')}),)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'scheduled_at', 'status')
    list_filter = ('status',)
    search_fields = ('patient__username', 'doctor__username')
    raw_id_fields = ('patient', 'doctor')


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'reminder_type', 'scheduled_for', 'status', 'sent_at')
    list_filter = ('status', 'reminder_type')
    search_fields = ('patient__username', 'message')
    raw_id_fields = ('patient', 'appointment')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'user', 'object_type', 'object_id', 'ip', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action', 'object_id', 'user__username')
    readonly_fields = ('created_at',)


@admin.register(PushSubscription)
class PushSubscriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'endpoint', 'updated_at')
    search_fields = ('user__username', 'endpoint')
    raw_id_fields = ('user',)
