from tape16.services.serials import create_serial, serial_pattern


def test_serial_format():
    pattern = serial_pattern("T16")
    for _ in range(200):
        assert pattern.match(create_serial())


def test_custom_prefix():
    serial = create_serial("TAPE")
    assert serial.startswith("TAPE-")
    assert serial_pattern("TAPE").match(serial)
    assert not serial_pattern("T16").match(serial)


def test_serials_are_random():
    assert len({create_serial() for _ in range(100)}) == 100
