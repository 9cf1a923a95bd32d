from telehealth.realtime.rooms import RoomRegistry, is_valid_room_id, room_group_name


def test_join_returns_other_participants():
    reg = RoomRegistry()
    assert reg.join('r1', 'a') == []
    assert reg.join('r1', 'b') == ['a']
    assert reg.join('r1', 'c') == ['a', 'b']
    assert reg.participants('r1') == ['a', 'b', 'c']


def test_rejoin_does_not_duplicate():
    reg = RoomRegistry()
    reg.join('r1', 'a')
    reg.join('r1', 'a')
    assert reg.participants('r1') == ['a']


def test_empty_room_is_discarded():
    reg = RoomRegistry()
    reg.join('r1', 'a')
    reg.join('r1', 'b')
    assert reg.leave('r1', 'a') is True
    assert reg.rooms() == {'r1': ['b']}
    assert reg.leave('r1', 'b') is True
    assert reg.rooms() == {}
    assert reg.leave('r1', 'b') is False


def test_leave_all_returns_rooms_left():
    reg = RoomRegistry()
    reg.join('r1', 'a')
    reg.join('r2', 'a')
    reg.join('r2', 'b')
    assert reg.leave_all('a') == ['r1', 'r2']
    assert reg.rooms() == {'r2': ['b']}
    assert reg.leave_all('a') == []


def test_room_id_validation():
    assert is_valid_room_id('consult-42')
    assert is_valid_room_id('a.b_c')
    assert not is_valid_room_id('')
    assert not is_valid_room_id('has space')
    assert not is_valid_room_id('x' * 65)
    assert not is_valid_room_id(42)
    assert room_group_name('r1') == 'room.r1'
