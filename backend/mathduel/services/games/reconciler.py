"""Match state reconciliation.

``reconcile(before, after)`` maps one change of a game document to the
minimal patch that moves the match to its next consistent state. It is a
left fold over an ordered list of rules; each rule looks at the change and
returns a partial patch, and later rules overwrite fields of earlier ones
so that terminal conditions dominate.

Patches use document field names. The winner is addressed by the field
path ``scores.winner`` so that applying it leaves the player scores alone.
"""

from typing import Any, Callable, Dict, Mapping, Optional

PENDING = 'pending'
ACCEPTED = 'accepted'
READY = 'ready'
INGAME = 'ingame'
FINISHED = 'finished'
ENDED = 'ended'
DRAW = 'draw'

WINNER_FIELD = 'scores.winner'
UPDATED_AT_FIELD = 'updatedAt'


class _ServerTimestamp:
    """Placeholder the store replaces with its own clock at write time."""

    def __repr__(self):
        return 'SERVER_TIMESTAMP'


SERVER_TIMESTAMP = _ServerTimestamp()

Document = Mapping[str, Any]
Patch = Dict[str, Any]
Rule = Callable[[Document, Document], Patch]


def _scores(doc: Document) -> Mapping[str, Any]:
    scores = doc.get('scores')
    return scores if isinstance(scores, Mapping) else {}


def _score(doc: Document, key: str):
    value = _scores(doc).get(key)
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


def invite_acceptance(before: Document, after: Document) -> Patch:
    if before.get('inviteeStatus') == PENDING and after.get('inviteeStatus') == ACCEPTED:
        return {'toStatus': ACCEPTED, 'fromStatus': ACCEPTED}
    return {}


def mutual_ready(before: Document, after: Document) -> Patch:
    # Re-fires unless *both* sides were already ingame before this change
    already_ingame = before.get('inviterStatus') == INGAME and before.get('inviteeStatus') == INGAME
    if after.get('inviterStatus') == READY and after.get('inviteeStatus') == READY and not already_ingame:
        return {'inviterStatus': INGAME, 'inviteeStatus': INGAME}
    return {}


def early_termination(before: Document, after: Document) -> Patch:
    if after.get('inviterStatus') == FINISHED or after.get('inviteeStatus') == FINISHED:
        return {'inviterStatus': FINISHED, 'inviteeStatus': FINISHED}
    return {}


def resolve_winner(doc: Document) -> Optional[str]:
    """Higher score wins; equal scores are a draw."""
    user1 = _score(doc, 'user1')
    user2 = _score(doc, 'user2')
    if user1 > user2:
        return doc.get('inviterId')
    if user2 > user1:
        return doc.get('inviteeId')
    return DRAW


def winner_resolution(before: Document, after: Document) -> Patch:
    if (
        after.get('inviterStatus') == FINISHED
        and after.get('inviteeStatus') == FINISHED
        and not _scores(after).get('winner')
    ):
        return {
            WINNER_FIELD: resolve_winner(after),
            'inviterStatus': ENDED,
            'inviteeStatus': ENDED,
        }
    return {}


# Rules that fire on a transition between before and after
CHANGE_RULES = (invite_acceptance,)
# Rules that depend only on the after state (plus guards on before)
STATE_RULES = (mutual_ready, early_termination, winner_resolution)

RULES = CHANGE_RULES + STATE_RULES


def reconcile(before: Optional[Document], after: Optional[Document], rules=RULES) -> Patch:
    """Return the fields to write for the change ``before`` -> ``after``.

    Inputs are never mutated. An empty dict means nothing should be written.
    A non-empty patch carries ``updatedAt: SERVER_TIMESTAMP``.
    """
    before = before or {}
    after = after or {}
    patch: Patch = {}
    for rule in rules:
        patch.update(rule(before, after))
    if patch:
        patch[UPDATED_AT_FIELD] = SERVER_TIMESTAMP
    return patch
