from flask import Blueprint, jsonify, request, current_app
from mathduel.errors import ChangeDeliveryError, GameNotFound, StaleDocumentError
from mathduel.models import STATUSES


games = Blueprint('games', __name__)

# Fields an external actor (a player client) may write. Everything else on
# the document is owned by the reconciler or immutable.
PLAYER_STATUS_FIELDS = ('inviterStatus', 'inviteeStatus')
PLAYER_SCORE_KEYS = ('user1', 'user2')


def _store():
    return current_app.extensions['game_store']


def _parse_changes(data):
    """Flatten a PATCH body into document field paths; raises ValueError."""
    if not isinstance(data, dict) or not data:
        raise ValueError('A JSON object with fields to update is required')
    changes = {}
    for field, value in data.items():
        if field in PLAYER_STATUS_FIELDS:
            if value not in STATUSES:
                raise ValueError(f'Invalid status for {field}: {value!r}')
            changes[field] = value
        elif field == 'scores':
            if not isinstance(value, dict):
                raise ValueError('scores must be an object')
            for key, score in value.items():
                changes[f'scores.{key}'] = score
        elif field.startswith('scores.'):
            changes[field] = value
        else:
            raise ValueError(f'Field {field} cannot be updated')
    for field, score in changes.items():
        if not field.startswith('scores.'):
            continue
        if field.split('.', 1)[1] not in PLAYER_SCORE_KEYS:
            raise ValueError(f'Field {field} cannot be updated')
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValueError(f'{field} must be a number')
    return changes


@games.route('/<string:game_id>', methods=['GET'])
def get_game(game_id):
    game = _store().get(game_id)
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(game), 200


@games.route('/<string:game_id>', methods=['PATCH'])
def update_game(game_id):
    """
    Applies a player's status or score change, then returns the document
    as it stands after the reconciler has reacted to it.
    """
    try:
        changes = _parse_changes(request.get_json(silent=True))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    store = _store()
    try:
        store.update(game_id, changes)
    except GameNotFound:
        return jsonify({'error': 'Game not found'}), 404
    except StaleDocumentError as exc:
        # Only the player's own write; nothing was stored
        current_app.logger.warning(f"[update-conflict] game={game_id} {exc}")
        return jsonify({'error': 'Game changed concurrently, retry'}), 409
    except ChangeDeliveryError as exc:
        # The player's change is stored; reconciliation is left to redelivery
        current_app.logger.error(f"[update-reconcile-fail] game={game_id} {exc}")
        return jsonify({
            'message': 'Update saved, reconciliation pending',
            'game': store.get(game_id),
        }), 202

    return jsonify(store.get(game_id)), 200
