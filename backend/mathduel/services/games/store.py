"""Game document store on top of Flask-SQLAlchemy.

``GameStore`` is the one handle the rest of the app uses to read and write
game documents. Every successful update is published on a ``ChangeFeed``
as a ``(before, after)`` pair, including the updates written by change
handlers themselves, so handlers must converge on repeated delivery.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from mathduel import db
from mathduel.errors import ChangeDeliveryError, GameNotFound, StaleDocumentError
from mathduel.models import Game, STATUSES
from mathduel.services.games.reconciler import SERVER_TIMESTAMP

# Document field -> Game attribute for top-level writable fields
WRITABLE_FIELDS = {
    'inviterStatus': 'inviter_status',
    'inviteeStatus': 'invitee_status',
    'toStatus': 'to_status',
    'fromStatus': 'from_status',
    'updatedAt': 'updated_at',
}
STATUS_FIELDS = ('inviterStatus', 'inviteeStatus', 'toStatus', 'fromStatus')
IMMUTABLE_FIELDS = ('gameId', 'inviterId', 'inviteeId')


@dataclass(frozen=True)
class Change:
    game_id: str
    before: Dict[str, Any]
    after: Dict[str, Any]
    # Version of the ``after`` snapshot
    version: int


ChangeHandler = Callable[[Change], None]


class ChangeFeed:
    """Delivers changes to subscribers in publish order.

    A change published while a handler is running (e.g. the handler's own
    write) is queued and delivered after that handler returns. A failing
    handler is logged and does not stop delivery of the rest of the queue;
    the failures are raised together as ChangeDeliveryError once it drains.
    """

    def __init__(self, logger=None):
        self._handlers: List[ChangeHandler] = []
        self._local = threading.local()
        self.logger = logger or logging.getLogger(__name__)

    def subscribe(self, handler: ChangeHandler) -> None:
        self._handlers.append(handler)

    def publish(self, change: Change) -> None:
        pending = getattr(self._local, 'pending', None)
        if pending is None:
            pending = self._local.pending = deque()
        pending.append(change)
        if getattr(self._local, 'dispatching', False):
            return
        self._local.dispatching = True
        failures = []
        try:
            while pending:
                current = pending.popleft()
                for handler in list(self._handlers):
                    try:
                        handler(current)
                    except Exception as exc:
                        self.logger.error(
                            f"[feed-fail] game={current.game_id} version={current.version} {exc!r}"
                        )
                        failures.append((current, exc))
        finally:
            self._local.dispatching = False
        if failures:
            raise ChangeDeliveryError(failures) from failures[0][1]


def _validate_status(field: str, value: Any) -> None:
    if value is not None and value not in STATUSES:
        raise ValueError(f"Invalid value for {field}: {value!r}")


class GameStore:
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed or ChangeFeed()

    def server_timestamp(self) -> datetime:
        return datetime.now(timezone.utc)

    def get(self, game_id: str) -> Optional[Dict[str, Any]]:
        game = Game.query.filter_by(game_id=game_id).first()
        return game.to_dict() if game else None

    def read(self, game_id: str) -> Tuple[Dict[str, Any], int]:
        """Return the document and its version; raise GameNotFound if absent."""
        game = Game.query.filter_by(game_id=game_id).first()
        if not game:
            raise GameNotFound(game_id)
        return game.to_dict(), game.version

    def create(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        for field in ('gameId', 'inviterId', 'inviteeId'):
            if not document.get(field):
                raise ValueError(f"{field} is required")
        for field in ('inviterStatus', 'inviteeStatus'):
            _validate_status(field, document.get(field))
        scores = {'user1': 0, 'user2': 0}
        scores.update(document.get('scores') or {})
        game = Game(
            game_id=document['gameId'],
            inviter_id=document['inviterId'],
            invitee_id=document['inviteeId'],
            inviter_status=document.get('inviterStatus') or 'pending',
            invitee_status=document.get('inviteeStatus') or 'pending',
            scores=scores,
            version=1,
        )
        try:
            db.session.add(game)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return game.to_dict()

    def update(self, game_id: str, changes: Mapping[str, Any]) -> Change:
        """Write ``changes`` unconditionally (last write wins) and publish.

        The write is committed before handlers run; a handler failure surfaces
        as ChangeDeliveryError with the change already stored.
        """
        return self._write(game_id, changes, expected_version=None)

    def apply_patch(self, game_id: str, patch: Mapping[str, Any], expected_version: int) -> Change:
        """Write ``patch`` only if the stored version is still ``expected_version``."""
        return self._write(game_id, patch, expected_version=expected_version)

    def _write(self, game_id, fields, expected_version):
        game = Game.query.filter_by(game_id=game_id).first()
        if not game:
            raise GameNotFound(game_id)
        before = game.to_dict()
        current_version = game.version
        if expected_version is not None and current_version != expected_version:
            raise StaleDocumentError(game_id, expected_version, current_version)

        values = self._column_values(game, fields)
        values[Game.version] = current_version + 1
        try:
            # Conditional on the version read above, so a concurrent writer
            # in between makes this a no-op instead of a lost update
            updated = (
                Game.query
                .filter_by(game_id=game_id, version=current_version)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                db.session.rollback()
                raise StaleDocumentError(game_id, current_version)
            db.session.commit()
        except StaleDocumentError:
            raise
        except Exception:
            db.session.rollback()
            raise

        after, version = self.read(game_id)
        change = Change(game_id=game_id, before=before, after=after, version=version)
        self.feed.publish(change)
        return change

    def _column_values(self, game: Game, fields: Mapping[str, Any]) -> Dict[Any, Any]:
        values: Dict[Any, Any] = {}
        scores = dict(game.scores or {})
        scores_changed = False
        for field, value in fields.items():
            if value is SERVER_TIMESTAMP:
                value = self.server_timestamp()
            if field in IMMUTABLE_FIELDS:
                raise ValueError(f"{field} is immutable")
            if field == 'scores':
                if not isinstance(value, Mapping):
                    raise ValueError("scores must be a mapping")
                scores = dict(value)
                scores_changed = True
            elif field.startswith('scores.'):
                scores[field.split('.', 1)[1]] = value
                scores_changed = True
            elif field in WRITABLE_FIELDS:
                if field in STATUS_FIELDS:
                    _validate_status(field, value)
                values[getattr(Game, WRITABLE_FIELDS[field])] = value
            else:
                raise ValueError(f"Unknown field: {field}")
        if scores_changed:
            values[Game.scores] = scores
        return values
