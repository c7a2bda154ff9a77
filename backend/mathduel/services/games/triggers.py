from typing import Any, Dict, Mapping, Optional

from mathduel import socketio
from mathduel.errors import StaleDocumentError
from mathduel.services.games.reconciler import (
    CHANGE_RULES,
    SERVER_TIMESTAMP,
    STATE_RULES,
    UPDATED_AT_FIELD,
    reconcile,
)
from mathduel.services.games.store import Change, GameStore


def recompute_patch(change: Change, current: Mapping[str, Any]) -> Dict[str, Any]:
    """Patch for ``change`` when the stored document has moved past ``change.after``.

    Transition rules still see the change as delivered, since the transition
    did happen; only fields the current document lacks are kept. State rules
    see the current document.
    """
    patch = {
        field: value
        for field, value in reconcile(change.before, change.after, rules=CHANGE_RULES).items()
        if field != UPDATED_AT_FIELD and current.get(field) != value
    }
    patch.update(reconcile(change.before, current, rules=STATE_RULES))
    if patch:
        patch[UPDATED_AT_FIELD] = SERVER_TIMESTAMP
    return patch


def on_game_update(app, store: GameStore, change: Change) -> Optional[Dict[str, Any]]:
    """Reconcile one game change and write the resulting patch.

    Returns the applied patch, or None when nothing fired. The write is a
    compare-and-set against the version of ``change.after``; when another
    write got there first, the patch is recomputed against the current
    document and retried.
    """
    max_retries = int(app.config.get('RECONCILE_MAX_RETRIES', 3))
    version = change.version
    patch = reconcile(change.before, change.after)
    attempt = 0
    while True:
        if not patch:
            return None
        fields = sorted(k for k in patch if k != UPDATED_AT_FIELD)
        app.logger.info(f"[reconcile-patch] game={change.game_id} version={version} fields={fields}")
        try:
            store.apply_patch(change.game_id, patch, expected_version=version)
        except StaleDocumentError as exc:
            attempt += 1
            if attempt > max_retries:
                app.logger.warning(f"[reconcile-abort] game={change.game_id} retries={max_retries} {exc}")
                raise
            app.logger.info(f"[reconcile-retry] game={change.game_id} attempt={attempt} {exc}")
            current, version = store.read(change.game_id)
            patch = recompute_patch(change, current)
            continue
        socketio.emit('state_update', {'game_id': change.game_id}, to=f"game:{change.game_id}", namespace='/ws')
        return patch


def register_game_triggers(app, store: GameStore) -> None:
    """Subscribe the reconciler to every game update published by ``store``."""
    store.feed.subscribe(lambda change: on_game_update(app, store, change))
