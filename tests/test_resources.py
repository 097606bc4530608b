import pytest

from tidal_cli.desktop.resources import parse_resource


@pytest.mark.parametrize(
    "text, kind, resource_id",
    [
        ("https://tidal.com/browse/album/123456", "album", "123456"),
        ("https://listen.tidal.com/playlist/0b1f3c2e-aaaa-bbbb-cccc-000000000000?u", "playlist", "0b1f3c2e-aaaa-bbbb-cccc-000000000000"),
        ("tidal.com/track/99", "track", "99"),
        ("mix/0123abcdef", "mix", "0123abcdef"),
        ("Album/77", "album", "77"),
        ("12345", "track", "12345"),
        ("0b1f3c2e-aaaa-bbbb-cccc-000000000000", "playlist", "0b1f3c2e-aaaa-bbbb-cccc-000000000000"),
    ],
)
def test_parse_resource(text, kind, resource_id):
    resource = parse_resource(text)
    assert resource.type == kind
    assert resource.id == resource_id


def test_desktop_url():
    assert parse_resource("album/5").desktop_url == "https://desktop.tidal.com/album/5"
