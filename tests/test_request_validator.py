"""Tests for request_validator.py and the request schemas in models.py."""
import pytest

from models import AuthorizeRequest, ClientRegistrationRequest, TokenRequest
from request_validator import format_errors, validate_request


def _authorize_params(**overrides):
    params = {
        "client_id": "c1",
        "redirect_uri": "https://cb.example/cb",
        "response_type": "code",
        "state": "s1",
    }
    params.update(overrides)
    return {k: v for k, v in params.items() if v is not None}


class TestAuthorizeRequest:
    def test_defaults_applied(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(code_challenge="X"))
        assert outcome.success
        assert outcome.value.code_challenge_method == "S256"
        assert outcome.value.client_secret is None
        assert outcome.value.resource is None

    def test_unknown_parameters_ignored(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(scope="read"))
        assert outcome.success

    def test_errors_accumulate_in_declaration_order(self):
        outcome = validate_request(AuthorizeRequest, {"response_type": "token", "redirect_uri": "nope"})
        assert not outcome.success
        assert [path for path, _ in outcome.errors] == [
            "client_id", "redirect_uri", "response_type", "state",
        ]

    def test_format_errors(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(client_id=None, state=""))
        description = format_errors(outcome.errors)
        assert description.startswith("client_id: Field required, state: ")

    @pytest.mark.parametrize("method", ["plain", "s256"])
    def test_only_s256(self, method):
        outcome = validate_request(AuthorizeRequest, _authorize_params(code_challenge_method=method))
        assert [path for path, _ in outcome.errors] == ["code_challenge_method"]

    @pytest.mark.parametrize("uri", ["/relative/cb", "cb.example", "https://cb.example/cb#frag"])
    def test_redirect_uri_must_be_absolute(self, uri):
        outcome = validate_request(AuthorizeRequest, _authorize_params(redirect_uri=uri))
        assert [path for path, _ in outcome.errors] == ["redirect_uri"]

    def test_custom_scheme_redirect_allowed(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(redirect_uri="com.example.app://oauth/cb"))
        assert outcome.success

    def test_resource_must_be_url(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(resource="not a url"))
        assert [path for path, _ in outcome.errors] == ["resource"]

    def test_empty_optional_rejected(self):
        outcome = validate_request(AuthorizeRequest, _authorize_params(code_challenge=""))
        assert [path for path, _ in outcome.errors] == ["code_challenge"]


class TestTokenRequest:
    def _body(self, **overrides):
        body = {
            "grant_type": "authorization_code",
            "code": "abc",
            "client_id": "c1",
            "redirect_uri": "https://cb.example/cb",
            "code_verifier": "v",
        }
        body.update(overrides)
        return {k: v for k, v in body.items() if v is not None}

    def test_valid(self):
        outcome = validate_request(TokenRequest, self._body())
        assert outcome.success
        assert outcome.value.client_secret is None

    def test_wrong_grant_type(self):
        outcome = validate_request(TokenRequest, self._body(grant_type="refresh_token"))
        assert [path for path, _ in outcome.errors] == ["grant_type"]

    def test_non_string_rejected(self):
        outcome = validate_request(TokenRequest, self._body(code=123))
        assert [path for path, _ in outcome.errors] == ["code"]

    def test_both_proofs_rejected(self):
        outcome = validate_request(TokenRequest, self._body(client_secret="s"))
        assert not outcome.success
        assert "not both" in format_errors(outcome.errors)

    def test_neither_proof_passes_schema(self):
        outcome = validate_request(TokenRequest, self._body(code_verifier=None))
        assert outcome.success

    @pytest.mark.parametrize("raw", [["grant_type"], "text", 5, None])
    def test_non_object_body(self, raw):
        outcome = validate_request(TokenRequest, raw)
        assert outcome.errors == [("body", "Expected an object")]


class TestClientRegistrationRequest:
    def test_item_paths_reported(self):
        outcome = validate_request(ClientRegistrationRequest,
                                   {"redirect_uris": ["https://ok.example/cb", "bad"]})
        assert [path for path, _ in outcome.errors] == ["redirect_uris.1"]
