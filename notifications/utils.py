import logging

from .models import Notification

logger = logging.getLogger(__name__)


def notify_once(user_id, *, type: str, title: str, body: str = "", data=None, dedupe_key: str):
    """
    Best-effort notification insert. Idempotent per dedupe_key so a replayed
    gateway callback never produces a second row. Never raises.
    """
    try:
        obj, created = Notification.objects.get_or_create(
            dedupe_key=dedupe_key,
            defaults={
                "user_id": user_id,
                "type": type,
                "title": title,
                "body": body,
                "data": data or {},
            },
        )
        return obj if created else None
    except Exception:
        logger.exception("notification insert failed for %s", dedupe_key)
        return None
