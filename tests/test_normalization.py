import pytest

from focus_streak.normalization import normalize_domain


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.github.com/x", "github.com"),
        ("https://github.com", "github.com"),
        ("http://sub.coursera.org/learn?q=1", "sub.coursera.org"),
        ("https://WWW.YouTube.com/watch", "youtube.com"),
        ("https://localhost:8080/", "localhost"),
        ("https://wwwfoo.com/", "wwwfoo.com"),
    ],
)
def test_normalize_domain_takes_hostname_without_www(url, expected):
    assert normalize_domain(url) == expected


@pytest.mark.parametrize("url", [None, "", "not a url", "http://[::1", "mailto:someone"])
def test_unparsable_urls_are_untracked(url):
    assert normalize_domain(url) is None


def test_only_leading_www_is_stripped():
    assert normalize_domain("https://www.www.example.com") == "www.example.com"
