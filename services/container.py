"""
Service container.

build_services(config, storage) wires every service from the Flask config;
the application factory keeps the result in app.extensions["cms"].
"""
from __future__ import annotations

from dataclasses import dataclass

from services.account_service import AccountService
from services.admin_service import AdminService
from services.auth_service import AuthMode, OtpVerifier, UserAuthService
from services.clock import Clock
from services.media import create_media_host
from services.otp import OtpEngine
from services.principal_store import PrincipalStore
from services.rate_limiter import RateLimiter, build_rules, create_rate_limit_store
from services.refresh_sessions import EmbeddedRefreshStore, create_refresh_store
from services.sessions import SessionManager
from services.sms import create_sms_dispatcher
from services.tokens import TokenService
from utils.security import CredentialHasher


@dataclass
class Services:
    clock: Clock
    hasher: CredentialHasher
    store: PrincipalStore
    user_tokens: TokenService
    admin_tokens: TokenService
    otp: OtpEngine
    sms: object
    media: object
    user_sessions: SessionManager
    admin_sessions: SessionManager
    user_auth: UserAuthService
    admin_auth: AdminService
    accounts: AccountService
    rate_limiter: RateLimiter

    @property
    def auth_mode(self) -> AuthMode:
        return self.user_auth.mode


def build_services(config, storage) -> Services:
    clock = Clock()
    hasher = CredentialHasher(
        time_cost=int(config["PASSWORD_HASH_COST"]),
        memory_cost=int(config["PASSWORD_HASH_MEMORY_KIB"]),
        parallelism=int(config["PASSWORD_HASH_PARALLELISM"]),
    )
    store = PrincipalStore(storage, clock)

    issuer = config["APP_NAME"]
    user_tokens = TokenService(
        access_secret=config["JWT_ACCESS_SECRET"],
        refresh_secret=config["JWT_REFRESH_SECRET"],
        access_ttl=config["JWT_ACCESS_EXPIRY"],
        refresh_ttl=config["JWT_REFRESH_EXPIRY"],
        issuer=issuer,
        audience=f"{issuer}:users",
        algorithm=config["JWT_ALGORITHM"],
        now=clock.now,
    )
    admin_tokens = TokenService(
        access_secret=config["JWT_ADMIN_ACCESS_SECRET"],
        refresh_secret=config["JWT_ADMIN_REFRESH_SECRET"],
        access_ttl=config["JWT_ADMIN_ACCESS_EXPIRY"],
        refresh_ttl=config["JWT_ADMIN_REFRESH_EXPIRY"],
        issuer=issuer,
        audience=f"{issuer}:admins",
        algorithm=config["JWT_ALGORITHM"],
        now=clock.now,
    )

    otp = OtpEngine(
        store,
        clock,
        length=int(config["OTP_LENGTH"]),
        ttl_seconds=int(config["OTP_TTL_SECONDS"]),
        max_attempts=int(config["OTP_MAX_ATTEMPTS"]),
        resend_interval_seconds=int(config["OTP_RESEND_INTERVAL_SECONDS"]),
    )
    sms = create_sms_dispatcher(config)

    user_sessions = SessionManager(
        tokens=user_tokens,
        sessions=create_refresh_store(config["REFRESH_TOKEN_STORAGE"], storage, clock),
        loader=store.get_user,
    )
    # Admins always keep a single session on their own row
    admin_sessions = SessionManager(
        tokens=admin_tokens,
        sessions=EmbeddedRefreshStore(storage, clock),
        loader=store.get_admin,
        claims=lambda admin: {"role": admin.role_name},
    )

    user_auth = UserAuthService(
        store=store,
        hasher=hasher,
        otp_engine=otp,
        sms=sms,
        sessions=user_sessions,
        mode=config["AUTH_MODE"],
    )
    admin_auth = AdminService(store=store, hasher=hasher, sessions=admin_sessions)
    accounts = AccountService(
        store=store,
        hasher=hasher,
        otp_verifier=OtpVerifier(otp),
        user_auth=user_auth,
        clock=clock,
    )
    rate_limiter = RateLimiter(
        create_rate_limit_store(config["RATE_LIMIT_STORAGE_URL"]),
        build_rules(config),
        enabled=bool(config["RATE_LIMIT_ENABLED"]),
    )

    return Services(
        clock=clock,
        hasher=hasher,
        store=store,
        user_tokens=user_tokens,
        admin_tokens=admin_tokens,
        otp=otp,
        sms=sms,
        media=create_media_host(config),
        user_sessions=user_sessions,
        admin_sessions=admin_sessions,
        user_auth=user_auth,
        admin_auth=admin_auth,
        accounts=accounts,
        rate_limiter=rate_limiter,
    )
