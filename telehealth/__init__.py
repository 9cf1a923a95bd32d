"""Telehealth application for the clinic backend.

This package contains the models, realtime notification bus, WebRTC
signaling relay, reminder dispatch and the API routes that expose them.
"""
