"""Tests for perch.http.cookies."""

from perch.http.cookies import SetCookie, parse_cookies


class TestParseCookies:
    def test_pairs(self) -> None:
        assert parse_cookies("a=1; b=2") == {"a": "1", "b": "2"}

    def test_empty(self) -> None:
        assert parse_cookies("") == {}

    def test_malformed_skipped(self) -> None:
        assert parse_cookies("novalue; =x; ok=1") == {"ok": "1"}

    def test_quoted_value(self) -> None:
        assert parse_cookies('token="abc"') == {"token": "abc"}

    def test_value_with_equals(self) -> None:
        assert parse_cookies("sig=a=b") == {"sig": "a=b"}


class TestSetCookie:
    def test_minimal(self) -> None:
        cookie = SetCookie("a", "1", httponly=False, samesite=None)
        assert cookie.to_header_value() == "a=1; Path=/"

    def test_all_attributes(self) -> None:
        cookie = SetCookie("s", "v", max_age=10, domain="example.com", secure=True, samesite="strict")
        assert cookie.to_header_value() == (
            "s=v; Max-Age=10; Path=/; Domain=example.com; Secure; HttpOnly; SameSite=Strict"
        )
