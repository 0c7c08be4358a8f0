"""Tests for domain normalization, validation and token issue."""

from __future__ import annotations

import pytest

from tenantdomains.domains import (
    DomainCandidate,
    DomainPolicy,
    ErrorKind,
    TokenIssuer,
    normalize_domain,
    validate_domain_format,
)
from tenantdomains.domains.validation import (
    ERROR_BLOCKED_TLD,
    ERROR_INVALID_FORMAT,
    ERROR_IP_ADDRESS,
    ERROR_REQUIRED,
    ERROR_SYSTEM_DOMAIN,
    has_valid_label_syntax,
)

NORMALIZATION_INPUTS = [
    "",
    "   ",
    "shop.example.com",
    "SHOP.EXAMPLE.COM",
    "  https://www.Shop.Example.com/path?x=1  ",
    "http://shop.example.com:8080/",
    "www.www.shop.example.com",
    "http:// shop.example.com",
    "https://http://shop.example.com",
    "www.",
    "shop.example.com:443:80",
    "https://user@shop.example.com",
]


class TestNormalizeDomain:
    """Tests for normalize_domain."""

    def test_full_url(self):
        """Test scheme, www, case and path are stripped."""
        assert normalize_domain("https://www.Shop.Example.com/path?x=1") == "shop.example.com"

    def test_strips_port(self):
        """Test port is removed."""
        assert normalize_domain("shop.example.com:8080") == "shop.example.com"

    def test_strips_http_scheme(self):
        """Test plain http scheme is removed."""
        assert normalize_domain("http://shop.example.com") == "shop.example.com"

    def test_trims_whitespace(self):
        """Test surrounding whitespace is removed."""
        assert normalize_domain("  shop.example.com \n") == "shop.example.com"

    def test_only_leading_www_removed(self):
        """Test www inside the name is kept."""
        assert normalize_domain("shop.www.example.com") == "shop.www.example.com"

    def test_empty(self):
        """Test empty and None input."""
        assert normalize_domain("") == ""
        assert normalize_domain(None) == ""

    @pytest.mark.parametrize("raw", NORMALIZATION_INPUTS)
    def test_idempotent(self, raw):
        """Test normalizing a normalized value changes nothing."""
        once = normalize_domain(raw)
        assert normalize_domain(once) == once

    @pytest.mark.parametrize("raw", NORMALIZATION_INPUTS)
    def test_always_lower_case(self, raw):
        """Test output is lower-case."""
        assert normalize_domain(raw) == normalize_domain(raw).lower()

    def test_candidate_from_raw(self):
        """Test DomainCandidate keeps both forms."""
        candidate = DomainCandidate.from_raw("WWW.Shop.com")
        assert candidate.raw == "WWW.Shop.com"
        assert candidate.normalized == "shop.com"


class TestValidateDomainFormat:
    """Tests for validate_domain_format."""

    def test_valid_domain(self):
        """Test a normal domain passes."""
        result = validate_domain_format("shop.example.com")
        assert result.is_valid is True
        assert result.error is None
        assert result.kind is None

    def test_valid_apex(self):
        """Test an apex domain passes."""
        assert validate_domain_format("mybakery.co").is_valid is True

    def test_empty(self):
        """Test empty domain is rejected."""
        result = validate_domain_format("")
        assert result.is_valid is False
        assert result.error == ERROR_REQUIRED
        assert result.kind == ErrorKind.POLICY

    def test_too_long(self):
        """Test domains over 253 characters are rejected."""
        domain = ".".join(["a" * 60] * 5) + ".com"
        assert len(domain) > 253

        result = validate_domain_format(domain)

        assert result.is_valid is False
        assert "maximum length of 253" in result.error

    def test_custom_max_length(self):
        """Test the policy's max length is used."""
        policy = DomainPolicy.build([], [], max_length=10)
        result = validate_domain_format("shop.example.com", policy)
        assert result.is_valid is False
        assert "maximum length of 10" in result.error

    @pytest.mark.parametrize("ip", ["192.168.1.1", "10.0.0.1", "203.0.113.10", "999.999.999.999"])
    def test_ip_rejected(self, ip):
        """Test dotted-quad strings fail with the IP message."""
        result = validate_domain_format(ip)
        assert result.is_valid is False
        assert result.error == ERROR_IP_ADDRESS

    @pytest.mark.parametrize(
        "domain",
        [
            "shop.local",
            "printer.internal",
            "dev.localhost",
            "site.test",
            "foo.example",
            "bar.invalid",
        ],
    )
    def test_blocked_tlds(self, domain):
        """Test blocked TLD suffixes are rejected."""
        result = validate_domain_format(domain)
        assert result.is_valid is False
        assert result.error == ERROR_BLOCKED_TLD

    @pytest.mark.parametrize(
        "domain",
        [
            "waveorder.app",
            "www.waveorder.app",
            "shop.waveorder.app",
            "deep.shop.waveorder.app",
            "localhost",
            "myapp.vercel.app",
            "site.netlify.app",
            "app.herokuapp.com",
            "site.azurewebsites.net",
        ],
    )
    def test_reserved_domains(self, domain):
        """Test reserved domains and their subdomains are rejected."""
        result = validate_domain_format(domain)
        assert result.is_valid is False
        assert result.error == ERROR_SYSTEM_DOMAIN

    def test_reserved_suffix_requires_label_boundary(self):
        """Test a domain merely ending with the same letters is allowed."""
        assert validate_domain_format("notwaveorder.app").is_valid is True

    @pytest.mark.parametrize(
        "domain",
        [
            "example",
            "-shop.example.com",
            "shop-.example.com",
            "shop.-example.com",
            "shop..example.com",
            "shop.example.c",
            "shop.example.c0m",
            "shop_store.example.com",
            "shop.example.com.",
            "a" * 64 + ".com",
        ],
    )
    def test_invalid_format(self, domain):
        """Test label syntax violations."""
        result = validate_domain_format(domain)
        assert result.is_valid is False
        assert result.error == ERROR_INVALID_FORMAT

    def test_first_failing_rule_wins(self):
        """Test a reserved domain on a blocked TLD reports the TLD rule."""
        policy = DomainPolicy.build(["platform.test"], [".test"])
        result = validate_domain_format("shop.platform.test", policy)
        assert result.error == ERROR_BLOCKED_TLD

    def test_injected_policy(self):
        """Test policy replaces the built-in lists."""
        policy = DomainPolicy.build(["mystore.io"], ["corp"])

        assert validate_domain_format("shop.mystore.io", policy).error == ERROR_SYSTEM_DOMAIN
        assert validate_domain_format("intranet.corp", policy).error == ERROR_BLOCKED_TLD
        assert validate_domain_format("shop.vercel.app", policy).is_valid is True

    def test_policy_build_canonicalizes(self):
        """Test suffix lists are lower-cased and dotted consistently."""
        policy = DomainPolicy.build([" .Shop.IO. ", ""], ["TEST", ".local", "test"])
        assert policy.reserved_domains == ("shop.io",)
        assert policy.blocked_tlds == (".test", ".local")

    def test_label_syntax_helper(self):
        """Test label helper directly."""
        assert has_valid_label_syntax("xn--bcher-kva.example") is True
        assert has_valid_label_syntax("a.b.c.de") is True
        assert has_valid_label_syntax("com") is False


class TestTokenIssuer:
    """Tests for TokenIssuer."""

    def test_issue(self):
        """Test token value and record name."""
        token = TokenIssuer().issue("shop.example.com")

        assert token.value.startswith("platform-verify-")
        assert token.record_name == "_platform-verification.shop.example.com"

    def test_entropy(self):
        """Test tokens carry 128 bits as 32 hex characters."""
        token = TokenIssuer().issue("shop.example.com")
        random_part = token.value.removeprefix("platform-verify-")

        assert len(random_part) == 32
        int(random_part, 16)

    def test_tokens_unique(self):
        """Test repeated issues never repeat."""
        issuer = TokenIssuer()
        values = {issuer.issue("shop.example.com").value for _ in range(200)}
        assert len(values) == 200

    def test_custom_namespace(self):
        """Test namespace drives prefix and record label."""
        token = TokenIssuer("WaveOrder").issue("shop.example.com")

        assert token.value.startswith("waveorder-verify-")
        assert token.record_name == "_waveorder-verification.shop.example.com"

    def test_empty_namespace_rejected(self):
        """Test blank namespace raises."""
        with pytest.raises(ValueError):
            TokenIssuer("  ")
