from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy.exc import IntegrityError

from mathduel import db
from mathduel.models import DailyChallenge
from mathduel.services.challenges.synthesizer import ChallengeGenerator, get_generator

DATE_KEY_FORMAT = '%Y-%m-%d'


def challenge_date_key(now: Optional[datetime] = None, tz: str = 'Europe/Berlin') -> str:
    """Calendar date of ``now`` (default: current time) in zone ``tz``."""
    zone = ZoneInfo(tz)
    if now is None:
        now = datetime.now(zone)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).strftime(DATE_KEY_FORMAT)


def validate_date_key(date_key: str) -> str:
    try:
        parsed = datetime.strptime(date_key, DATE_KEY_FORMAT)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date key: {date_key!r}") from None
    if parsed.strftime(DATE_KEY_FORMAT) != date_key:
        raise ValueError(f"Invalid date key: {date_key!r}")
    return date_key


def generator_from_config(config, mode: Optional[str] = None) -> ChallengeGenerator:
    mode = mode or config.get('CHALLENGE_MODE', 'advanced')
    if mode == 'expert':
        return get_generator('expert')
    return get_generator(
        mode,
        operand_count_min=int(config.get('CHALLENGE_OPERAND_MIN', 2)),
        operand_count_max=int(config.get('CHALLENGE_OPERAND_MAX', 4)),
        max_value=int(config.get('CHALLENGE_MAX_VALUE', 20)),
        upper_bound=int(config.get('CHALLENGE_UPPER_BOUND', 1000)),
        bracket_probability=float(config.get('CHALLENGE_BRACKET_PROBABILITY', 0.5)),
        max_attempts=int(config.get('CHALLENGE_MAX_ATTEMPTS', 10000)),
    )


def get_challenge(date_key: str) -> Optional[Dict[str, Any]]:
    row = DailyChallenge.query.filter_by(date=validate_date_key(date_key)).first()
    return row.to_dict() if row else None


def ensure_daily_challenge(
    date_key: Optional[str] = None,
    generator: Optional[ChallengeGenerator] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Create the challenge for ``date_key`` unless one exists.

    Returns ``(challenge, created)``. The insert itself is the existence
    check: the date is the primary key, so of two racing callers exactly one
    insert succeeds and the other reads back the winner's document.
    """
    config = current_app.config
    if date_key is None:
        date_key = challenge_date_key(tz=config.get('DAILY_CHALLENGE_TZ', 'Europe/Berlin'))
    validate_date_key(date_key)

    existing = get_challenge(date_key)
    if existing:
        current_app.logger.info(f"[challenge-exists] date={date_key}")
        return existing, False

    generator = generator or generator_from_config(config)
    challenge = generator.generate()
    row = DailyChallenge(
        date=date_key,
        question=challenge.question,
        answer=challenge.answer,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.session.add(row)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info(f"[challenge-exists] date={date_key} lost create race")
        return get_challenge(date_key), False
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"[challenge-create] date={date_key} question={challenge.question!r} answer={challenge.answer}"
    )
    return row.to_dict(), True
