"""API key issuer tests."""

from keygate.auth.api_keys import ApiKeyIssuer


def test_issue_returns_prefixed_printable_token():
    key = ApiKeyIssuer().issue()
    assert key.startswith("kg_")
    assert len(key) > len("kg_")
    assert key.isprintable()
    assert "=" not in key


def test_issue_without_seed_is_random():
    issuer = ApiKeyIssuer()
    keys = {issuer.issue() for _ in range(50)}
    assert len(keys) == 50


def test_issue_with_seed_is_deterministic():
    issuer = ApiKeyIssuer()
    assert issuer.issue(b"seed-1") == issuer.issue(b"seed-1")
    assert issuer.issue(b"seed-1") != issuer.issue(b"seed-2")


def test_token_does_not_reveal_seed():
    key = ApiKeyIssuer().issue(b"1700000000")
    assert "1700000000" not in key


def test_custom_prefix():
    assert ApiKeyIssuer(prefix="test_").issue().startswith("test_")
