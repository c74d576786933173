# credential_manager.py
import os

from models import OAuthConfig, ProofMethod


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class CredentialManager:
    @staticmethod
    def get_jwt_secret():
        secret_key = os.getenv('JWT_SECRET')
        if not secret_key:
            raise EnvironmentError("Missing required environment variable: JWT_SECRET")
        if len(secret_key) < 32:
            raise EnvironmentError("JWT_SECRET must be at least 32 characters long")
        return secret_key

    @staticmethod
    def get_session_secret():
        return os.getenv('SESSION_SECRET') or None

    @staticmethod
    def get_proof_methods():
        raw = os.getenv('OAUTH_PROOF_METHODS', 'pkce,client_secret')
        names = [name.strip() for name in raw.split(',') if name.strip()]
        try:
            methods = frozenset(ProofMethod(name) for name in names)
        except ValueError:
            raise EnvironmentError(f"Unsupported proof method in OAUTH_PROOF_METHODS: {raw}")
        if not methods:
            raise EnvironmentError("OAUTH_PROOF_METHODS must name at least one proof method")
        return methods

    @staticmethod
    def get_allowed_origins():
        raw = os.getenv('CORS_ALLOWED_ORIGINS', '')
        return [origin.strip() for origin in raw.split(',') if origin.strip()]

    @staticmethod
    def get_oauth_config():
        return OAuthConfig(
            jwt_secret=CredentialManager.get_jwt_secret(),
            session_secret=CredentialManager.get_session_secret(),
            base_url=os.getenv('OAUTH_BASE_URL', 'http://localhost:3000'),
            issuer=os.getenv('OAUTH_ISSUER', 'mcp-memory'),
            audience=os.getenv('OAUTH_AUDIENCE', 'mcp-memory'),
            resource_path=os.getenv('OAUTH_RESOURCE_PATH', '/api/mcp'),
            login_url=os.getenv('OAUTH_LOGIN_URL', '/login'),
            allowed_proofs=CredentialManager.get_proof_methods(),
            require_pkce=_env_flag('OAUTH_REQUIRE_PKCE', False),
            single_use_codes=_env_flag('OAUTH_SINGLE_USE_CODES', True),
            allowed_origins=CredentialManager.get_allowed_origins(),
        )
