"""Tests for node name translation and redirect rewriting."""

import pytest

from redirect_gateway.rewriter_service.errors import InvalidLocationError, NoMatchFoundError
from redirect_gateway.rewriter_service.rewrite import (
    build_external_host,
    capture_scheme,
    normalize_scheme,
    rewrite_first_quoted,
    rewrite_location,
    translate_hostname,
)
from redirect_gateway.shared.config import RewriteRule


class TestTranslateHostname:
    """Internal node names are translated by literal substring replacement."""

    @pytest.mark.parametrize(
        "host, pattern, replacement, expected",
        [
            ("xmidt-talaria-1", "xmidt-talaria-", "talaria", "talaria1"),
            ("xmidt-talaria-2", "xmidt-talaria-", "talaria", "talaria2"),
            ("xmidt-talaria3", "xmidt-talaria", "talaria", "talaria3"),
            ("xmidt-talaria4", "xmidt-talaria", "talaria", "talaria4"),
        ],
    )
    def test_replaces_pattern(self, host, pattern, replacement, expected):
        assert translate_hostname(host, pattern, replacement) == expected

    def test_replaces_every_occurrence(self):
        assert translate_hostname("node-a.node-b", "node-", "pub") == "puba.pubb"

    def test_missing_pattern_raises(self):
        with pytest.raises(NoMatchFoundError) as exc_info:
            translate_hostname("xmidt-talaria4", "xmidt-talaria-", "talaria")

        assert exc_info.value.host == "xmidt-talaria4"
        assert exc_info.value.pattern == "xmidt-talaria-"

    def test_translation_is_stable_once_pattern_is_gone(self):
        once = translate_hostname("internal-node-7", "internal-node-", "ext")

        with pytest.raises(NoMatchFoundError):
            translate_hostname(once, "internal-node-", "ext")

    def test_match_is_case_sensitive(self):
        with pytest.raises(NoMatchFoundError):
            translate_hostname("Internal-Node-1", "internal-node-", "ext")


class TestBuildExternalHost:
    """Translated names are joined to the public domain with a dot."""

    @pytest.mark.parametrize(
        "name, domain, expected",
        [
            ("", "", "."),
            ("talaria", "Test.com", "talaria.Test.com"),
            ("talaria2", "dev.rdk.yo-digital.com", "talaria2.dev.rdk.yo-digital.com"),
            ("talaria3", "xyz.com", "talaria3.xyz.com"),
        ],
    )
    def test_concatenation(self, name, domain, expected):
        assert build_external_host(name, domain) == expected


class TestSchemes:
    """Websocket schemes become http(s); the forwarded proto fills in a missing scheme."""

    @pytest.mark.parametrize(
        "scheme, expected",
        [("ws", "http"), ("wss", "https"), ("http", "http"), ("https", "https"), ("", ""), ("ftp", "ftp")],
    )
    def test_normalize(self, scheme, expected):
        assert normalize_scheme(scheme) == expected

    def test_target_scheme_wins(self):
        assert capture_scheme("https", "ws") == "https"

    def test_empty_target_scheme_uses_forwarded_proto(self):
        assert capture_scheme("", "wss") == "wss"
        assert normalize_scheme(capture_scheme("", "ws")) == "http"


class TestRewriteLocation:
    """Redirect targets are moved onto the public domain."""

    rule = RewriteRule(internal_pattern="internal-node-", external_replacement="ext", domain="example.com")

    def test_uses_request_scheme(self):
        result = rewrite_location("http://internal-node-1/api/v2/device", self.rule, "https")

        assert result == "https://ext1.example.com/api/v2/device"

    def test_fixed_scheme_overrides_request_scheme(self):
        rule = self.rule.model_copy(update={"fixed_scheme": "https"})

        result = rewrite_location("http://internal-node-1/api/v2/device", rule, "http")

        assert result == "https://ext1.example.com/api/v2/device"

    def test_internal_port_is_dropped(self):
        result = rewrite_location("http://internal-node-2:6200/api/v2/device", self.rule, "http")

        assert result == "http://ext2.example.com/api/v2/device"

    def test_query_and_fragment_are_kept(self):
        result = rewrite_location("http://internal-node-3:6200/api?x=1#frag", self.rule, "http")

        assert result == "http://ext3.example.com/api?x=1#frag"

    def test_relative_location_is_rejected(self):
        with pytest.raises(InvalidLocationError):
            rewrite_location("/api/v2/device", self.rule, "http")

    def test_unparsable_location_is_rejected(self):
        with pytest.raises(InvalidLocationError):
            rewrite_location("http://[internal-node-1/api", self.rule, "http")

    def test_host_case_is_kept_for_matching(self):
        rule = self.rule.model_copy(update={"internal_pattern": "Internal-Node-"})

        result = rewrite_location("http://Internal-Node-4:6200/api/v2/device", rule, "http")

        assert result == "http://ext4.example.com/api/v2/device"

    def test_lowercased_pattern_does_not_match_mixed_case_host(self):
        with pytest.raises(NoMatchFoundError):
            rewrite_location("http://Internal-Node-4/api/v2/device", self.rule, "http")

    def test_userinfo_is_kept(self):
        result = rewrite_location("http://user:pw@internal-node-5:6200/api", self.rule, "http")

        assert result == "http://user:pw@ext5.example.com/api"

    def test_foreign_host_is_rejected(self):
        with pytest.raises(NoMatchFoundError):
            rewrite_location("http://other-host/api/v2/device", self.rule, "http")


class TestRewriteFirstQuoted:
    """Only the first quoted run of the redirect body is replaced."""

    def test_replaces_anchor_target(self):
        body = b'<a href="http://internal-node-1:6200/api/v2/device">Temporary Redirect</a>.\n'

        result = rewrite_first_quoted(body, "http://ext1.example.com/api/v2/device")

        assert result == b'<a href="http://ext1.example.com/api/v2/device">Temporary Redirect</a>.\n'

    def test_only_first_line_is_touched(self):
        body = b'"first"\n"second"\n'

        assert rewrite_first_quoted(body, "new") == b'"new"\n"second"\n'

    def test_body_without_quotes_is_unchanged(self):
        assert rewrite_first_quoted(b"Temporary Redirect", "new") == b"Temporary Redirect"

    def test_replacement_backslashes_are_literal(self):
        assert rewrite_first_quoted(b'"x"', r"a\1b") == b'"a\\1b"'
