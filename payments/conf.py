# payments/conf.py
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

from .constants import (
    DEFAULT_LANGUAGE,
    ENV_PRODUCTION,
    ENV_TEST,
    GATEWAY_IPS,
    LANGUAGES,
    PAYMENT_ENDPOINTS,
    VERIFICATION_ENDPOINTS,
)
from .exceptions import GatewayNotConfigured

DEFAULT_WEBSITE = "radiant-matches-app.vercel.app"


@dataclass(frozen=True)
class SadadConfig:
    merchant_id: str = ""
    secret_key: str = ""
    test_mode: bool = True
    website_domain: str = DEFAULT_WEBSITE
    callback_base_url: str = ""
    payment_url_override: str = ""
    verification_url_override: str = ""
    language: str = DEFAULT_LANGUAGE
    verify_timeout: int = 25
    # callback hardening
    verify_ip: bool = False
    skip_ip_verification: bool = False
    strict_checksum: bool = False

    def __repr__(self) -> str:
        # keep the secret out of logs and tracebacks
        return (
            f"SadadConfig(merchant_id={self.merchant_id!r}, environment={self.environment}, "
            f"verify_ip={self.verify_ip}, skip_ip_verification={self.skip_ip_verification}, "
            f"strict_checksum={self.strict_checksum})"
        )

    @classmethod
    def from_settings(cls) -> "SadadConfig":
        language = str(getattr(settings, "SADAD_LANGUAGE", DEFAULT_LANGUAGE) or DEFAULT_LANGUAGE).upper()
        return cls(
            merchant_id=str(getattr(settings, "SADAD_MERCHANT_ID", "") or "").strip(),
            secret_key=str(getattr(settings, "SADAD_SECRET_KEY", "") or ""),
            test_mode=bool(getattr(settings, "SADAD_TEST_MODE", True)),
            website_domain=getattr(settings, "SADAD_WEBSITE_DOMAIN", "") or DEFAULT_WEBSITE,
            callback_base_url=(getattr(settings, "SADAD_CALLBACK_BASE_URL", "") or "").rstrip("/"),
            payment_url_override=getattr(settings, "SADAD_PAYMENT_URL", "") or "",
            verification_url_override=getattr(settings, "SADAD_VERIFICATION_URL", "") or "",
            language=language if language in LANGUAGES else DEFAULT_LANGUAGE,
            verify_timeout=int(getattr(settings, "SADAD_VERIFY_TIMEOUT", 25)),
            verify_ip=bool(getattr(settings, "SADAD_VERIFY_IP", False)),
            skip_ip_verification=bool(getattr(settings, "SADAD_SKIP_IP_VERIFICATION", False)),
            strict_checksum=bool(getattr(settings, "SADAD_STRICT_CHECKSUM", False)),
        )

    # ------------------------------------------------------------------ #

    @property
    def environment(self) -> str:
        return ENV_TEST if self.test_mode else ENV_PRODUCTION

    @property
    def payment_url(self) -> str:
        return self.payment_url_override or PAYMENT_ENDPOINTS[self.environment]

    @property
    def verification_url(self) -> str:
        return self.verification_url_override or VERIFICATION_ENDPOINTS[self.environment]

    @property
    def allowed_ips(self) -> Tuple[str, ...]:
        return GATEWAY_IPS[self.environment]

    @property
    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.secret_key)

    def require_credentials(self) -> None:
        if not self.is_configured:
            raise GatewayNotConfigured()


@lru_cache(maxsize=1)
def get_config() -> SadadConfig:
    return SadadConfig.from_settings()


@receiver(setting_changed)
def _reset_config(sender, setting, **kwargs):
    if setting.startswith("SADAD_"):
        get_config.cache_clear()
