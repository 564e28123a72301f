from __future__ import annotations

import logging

from django.apps import AppConfig
from django.conf import settings
from django.core.checks import Error, Warning, register

logger = logging.getLogger(__name__)


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Radiant Payments (SADAD)"

    def ready(self):
        # connects the setting_changed receiver that resets the cached gateway config
        from . import conf  # noqa: F401
        logger.debug("payments config loaded")


# ---------------------------------------------------------------------------
# System checks: surface gateway misconfiguration with `manage.py check`
# ---------------------------------------------------------------------------
@register()
def payments_system_checks(app_configs, **kwargs):
    from .conf import SadadConfig

    messages = []
    config = SadadConfig.from_settings()

    # 1) Credentials
    missing = [k for k, v in {
        "SADAD_MERCHANT_ID": config.merchant_id,
        "SADAD_SECRET_KEY": config.secret_key,
    }.items() if not v]
    if missing:
        check = Error if not config.test_mode else Warning
        messages.append(
            check(
                "SADAD credentials are missing; payment initiation will answer 500.",
                id="payments.E001" if check is Error else "payments.W001",
                hint=f"Missing settings: {', '.join(missing)}",
            )
        )

    # 2) Callback URL base
    if not config.callback_base_url and not settings.DEBUG:
        messages.append(
            Warning(
                "SADAD_CALLBACK_BASE_URL is not set; callback URLs are derived from the request host.",
                id="payments.W002",
                hint="Set it to the public https origin the gateway can reach.",
            )
        )

    # 3) Production hardening
    if not config.test_mode:
        if config.verify_ip and config.skip_ip_verification:
            messages.append(
                Warning(
                    "SADAD callback IP verification is bypassed in production.",
                    id="payments.W003",
                    hint="Unset SADAD_SKIP_IP_VERIFICATION once the proxy forwards the real client IP.",
                )
            )
        if not config.verify_ip:
            messages.append(
                Warning(
                    "SADAD callback IP allow-list is disabled in production.",
                    id="payments.W004",
                    hint="Set SADAD_VERIFY_IP=True.",
                )
            )
        if not config.strict_checksum:
            messages.append(
                Warning(
                    "SADAD callback checksum mismatches are only logged, not rejected.",
                    id="payments.W005",
                    hint="Set SADAD_STRICT_CHECKSUM=True once callbacks verify cleanly.",
                )
            )

    return messages
