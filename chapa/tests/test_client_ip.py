"""
Tests for client address resolution.
"""

import pytest

from chapa.api.client_ip import UNKNOWN_CLIENT, get_client_ip


@pytest.mark.parametrize("headers,expected", [
    ({"x-real-ip": " 203.0.113.7 ", "x-forwarded-for": "198.51.100.1"}, "203.0.113.7"),
    ({"x-forwarded-for": " 198.51.100.1 , 10.0.0.1"}, "198.51.100.1"),
    ({"x-real-ip": "  ", "x-forwarded-for": "198.51.100.1"}, "198.51.100.1"),
    ({"x-forwarded-for": ""}, UNKNOWN_CLIENT),
    ({}, UNKNOWN_CLIENT),
])
def test_get_client_ip(headers, expected):
    assert get_client_ip(headers) == expected
