from clawdock.PARSERS.mount_parser import MountSpecParser

def test_parse_drops_empty_pieces():
    assert MountSpecParser.parse(" a , , b ,  ") == ["a", "b"]

def test_parse_keeps_order_and_options():
    raw = "/srv/media:/home/node/media:ro,cache:/home/node/.cache"
    assert MountSpecParser.parse(raw) == [
        "/srv/media:/home/node/media:ro",
        "cache:/home/node/.cache",
    ]

def test_parse_empty_input():
    assert MountSpecParser.parse("") == []
    assert MountSpecParser.parse(None) == []
    assert MountSpecParser.parse(" , ,") == []
