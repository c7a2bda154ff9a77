import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from mathduel import socketio
from .daily import ensure_daily_challenge, generator_from_config


def seconds_until_next_run(now: datetime, hour: int, minute: int, tz: str) -> float:
    """Seconds from ``now`` until the next ``hour:minute`` wall-clock time in ``tz``.

    A run due exactly at ``now`` is scheduled for the following day.
    """
    zone = ZoneInfo(tz)
    local_now = now.astimezone(zone)
    day = local_now.date()
    target = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    if target <= local_now:
        day = day + timedelta(days=1)
        target = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    # Compare in UTC; same-zone subtraction would ignore DST shifts
    return (target.astimezone(timezone.utc) - local_now.astimezone(timezone.utc)).total_seconds()


def run_daily_challenge(app) -> Optional[dict]:
    """Create today's challenge inside an app context; logs instead of raising."""
    with app.app_context():
        try:
            challenge, created = ensure_daily_challenge(generator=generator_from_config(app.config))
        except Exception as exc:
            app.logger.error(f"[scheduler-fail] daily challenge: {exc}")
            return None
        return challenge if created else None


def schedule_daily_challenge(app) -> None:
    """Start the background loop that creates one challenge per day.

    - No-ops in TESTING mode and when ENABLE_DAILY_SCHEDULER is off
    - Fires at DAILY_CHALLENGE_HOUR:DAILY_CHALLENGE_MINUTE in DAILY_CHALLENGE_TZ
    - Duplicate firings are harmless: creation is create-if-absent
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    if not app.config.get('ENABLE_DAILY_SCHEDULER', True):
        return

    hour = int(app.config.get('DAILY_CHALLENGE_HOUR', 0))
    minute = int(app.config.get('DAILY_CHALLENGE_MINUTE', 0))
    tz = app.config.get('DAILY_CHALLENGE_TZ', 'Europe/Berlin')

    def _worker():
        while True:
            delay = seconds_until_next_run(datetime.now(ZoneInfo(tz)), hour, minute, tz)
            app.logger.info(f"[scheduler-set] daily challenge at {hour:02d}:{minute:02d} {tz} in {int(delay)}s")
            time.sleep(delay)
            app.logger.info("[scheduler-fire] daily challenge")
            run_daily_challenge(app)

    socketio.start_background_task(_worker)
