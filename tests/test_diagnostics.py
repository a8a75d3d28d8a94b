from gluquant.diagnostics import decimal_bytes, hex_dump, printable_ascii, visible_controls


def test_hex_dump_wraps_at_width():
    data = bytes(range(20))

    lines = hex_dump(data, width=8)

    assert lines == [
        '0000:  00 01 02 03 04 05 06 07',
        '0008:  08 09 0a 0b 0c 0d 0e 0f',
        '0010:  10 11 12 13',
    ]


def test_hex_dump_empty():
    assert hex_dump(b'') == []


def test_printable_ascii_keeps_line_breaks_and_tabs():
    assert printable_ascii('a\tb\r\nc\x02d\x7f') == 'a\tb\r\nc[0x2]d[0x7f]'


def test_visible_controls_names_common_characters():
    assert visible_controls('<SEND>\r\n\tx\x03') == '<SEND>[CR][LF][TAB]x[0x03]'


def test_decimal_bytes():
    assert decimal_bytes(b'<S\r') == '60, 83, 13'
