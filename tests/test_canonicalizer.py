"""Tests for URI normalization and reference resolution."""

import pytest

from depthcrawl.crawler.canonicalizer import Canonicalizer, normalize, remove_dot_segments, resolve
from depthcrawl.errors import ResolutionError


class TestRemoveDotSegments:
    """Tests for dot segment removal."""

    @pytest.mark.parametrize("path, expected", [
        ("/a/b/../c", "/a/c"),
        ("/a/./b", "/a/b"),
        ("/a/b/..", "/a/"),
        ("/..", "/"),
        ("/", "/"),
        ("/a/", "/a/"),
        ("", ""),
    ])
    def test_paths(self, path, expected):
        assert remove_dot_segments(path) == expected


class TestNormalize:
    """Tests for the greedy normalization profile."""

    def test_full_cleanup(self):
        uri = "HTTP://WWW.Example.COM:80/a/./b/../c//d?b=2&a=1#frag"
        assert normalize(uri) == "http://example.com/a/c/d?a=1&b=2"

    def test_empty_path_becomes_root(self):
        assert normalize("http://a.test") == "http://a.test/"

    def test_root_is_stable(self):
        assert normalize("http://a.test/") == "http://a.test/"

    def test_directory_index_removed(self):
        assert normalize("https://a.test:443/docs/index.html") == "https://a.test/docs/"

    def test_non_default_port_and_trailing_slash_kept(self):
        assert normalize("http://a.test:8080/x/") == "http://a.test:8080/x/"

    def test_idempotent(self):
        once = normalize("http://A.test/p/../q/?z=1&y=2")
        assert normalize(once) == once

    def test_force_http_is_opt_in(self):
        assert normalize("https://a.test/") == "https://a.test/"
        assert Canonicalizer(force_http=True).normalize("https://a.test/") == "http://a.test/"

    def test_www_kept_when_disabled(self):
        assert Canonicalizer(remove_www=False).normalize("http://www.a.test/") == "http://www.a.test/"

    @pytest.mark.parametrize("uri", [
        "",
        "   ",
        "not a url",
        "/relative/path",
        "mailto:someone@a.test",
        "http://",
        "http://a.test:99999/",
        "ftp://a.test/file",
    ])
    def test_malformed_rejected(self, uri):
        with pytest.raises(ResolutionError):
            normalize(uri)


class TestResolve:
    """Tests for reference resolution with the same-host constraint."""

    def test_relative_reference(self):
        assert resolve("http://a.test/dir/page", "../x") == "http://a.test/x"

    def test_sibling_reference(self):
        assert resolve("http://a.test/dir/", "page") == "http://a.test/dir/page"

    def test_fragment_only_reference_resolves_to_base(self):
        assert resolve("http://a.test/p", "#top") == "http://a.test/p"

    def test_protocol_relative_reference(self):
        assert resolve("https://a.test/", "//b.test/x") == "https://b.test/x"

    def test_external_host_allowed_without_same_host(self):
        assert resolve("http://a.test/", "http://b.test/") == "http://b.test/"

    def test_external_host_rejected_with_same_host(self):
        with pytest.raises(ResolutionError, match="external hostname"):
            resolve("http://a.test/", "http://b.test/", same_host=True)

    def test_same_host_ignores_www(self):
        assert resolve("http://www.a.test/", "http://a.test/y", same_host=True) == "http://a.test/y"

    @pytest.mark.parametrize("ref", ["javascript:void(0)", "mailto:x@a.test", "tel:123"])
    def test_hostless_reference_rejected(self, ref):
        with pytest.raises(ResolutionError):
            resolve("http://a.test/", ref)

    def test_hostname(self):
        assert Canonicalizer().hostname("http://A.test:8080/x") == "a.test"
        assert Canonicalizer().hostname("no host") == ""
