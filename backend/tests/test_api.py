from datetime import datetime, timezone

from mathduel import db
from mathduel.errors import StaleDocumentError
from mathduel.models import DailyChallenge
from mathduel.services.challenges.daily import challenge_date_key
from mathduel.services.games.store import GameStore


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_get_game(client, new_game):
    new_game()
    res = client.get('/api/games/g1')
    assert res.status_code == 200
    game = res.get_json()
    assert game['gameId'] == 'g1'
    assert game['inviterId'] == 'alice'
    assert game['inviteeId'] == 'bob'


def test_get_missing_game(client):
    assert client.get('/api/games/nope').status_code == 404


def test_patch_missing_game(client):
    res = client.patch('/api/games/nope', json={'inviterStatus': 'ready'})
    assert res.status_code == 404


def test_patch_validation(client, new_game):
    new_game()
    assert client.patch('/api/games/g1', json={}).status_code == 400
    assert client.patch('/api/games/g1', json={'inviterStatus': 'winning'}).status_code == 400
    assert client.patch('/api/games/g1', json={'inviterId': 'mallory'}).status_code == 400
    assert client.patch('/api/games/g1', json={'scores': {'winner': 'alice'}}).status_code == 400
    assert client.patch('/api/games/g1', json={'scores.user1': 'lots'}).status_code == 400
    assert client.patch('/api/games/g1', json={'updatedAt': 'now'}).status_code == 400
    assert client.patch('/api/games/g1', data='not json').status_code == 400


def test_full_match_over_http(client, new_game):
    new_game()
    game = client.patch('/api/games/g1', json={'inviteeStatus': 'accepted'}).get_json()
    assert game['toStatus'] == 'accepted'
    assert game['fromStatus'] == 'accepted'

    client.patch('/api/games/g1', json={'inviterStatus': 'ready'})
    game = client.patch('/api/games/g1', json={'inviteeStatus': 'ready'}).get_json()
    assert game['inviterStatus'] == 'ingame'
    assert game['inviteeStatus'] == 'ingame'

    client.patch('/api/games/g1', json={'scores': {'user1': 3}})
    client.patch('/api/games/g1', json={'scores.user2': 8})
    game = client.patch('/api/games/g1', json={'inviterStatus': 'finished'}).get_json()
    assert game['inviterStatus'] == 'ended'
    assert game['inviteeStatus'] == 'ended'
    assert game['scores']['winner'] == 'bob'
    assert game['updatedAt'] is not None


def test_winner_is_set_once(client, new_game):
    new_game(inviterStatus='ingame', inviteeStatus='ingame', scores={'user1': 7, 'user2': 3})
    client.patch('/api/games/g1', json={'inviterStatus': 'finished'})
    # A late score update after the match ended does not change the winner
    game = client.patch('/api/games/g1', json={'scores.user2': 100}).get_json()
    assert game['scores']['winner'] == 'alice'
    assert game['inviterStatus'] == 'ended'


def _insert_challenge(date_key):
    db.session.add(DailyChallenge(
        date=date_key, question='Was ist 2 * 3?', answer='6',
        created_at=datetime.now(timezone.utc),
    ))
    db.session.commit()


def test_today_challenge(client):
    assert client.get('/api/challenges/today').status_code == 404
    _insert_challenge(challenge_date_key(tz='Europe/Berlin'))
    res = client.get('/api/challenges/today')
    assert res.status_code == 200
    assert res.get_json()['answer'] == '6'


def test_challenge_by_date(client):
    _insert_challenge('2025-05-05')
    res = client.get('/api/challenges/2025-05-05')
    assert res.status_code == 200
    assert res.get_json()['question'] == 'Was ist 2 * 3?'
    assert client.get('/api/challenges/2025-05-06').status_code == 404
    assert client.get('/api/challenges/tomorrow').status_code == 400


def test_reconcile_failure_after_saved_update(client, store, new_game, monkeypatch):
    new_game(inviterStatus='ready', inviteeStatus='accepted')

    def always_stale(game_id, patch, expected_version):
        raise StaleDocumentError(game_id, expected_version)

    monkeypatch.setattr(store, 'apply_patch', always_stale)
    res = client.patch('/api/games/g1', json={'inviteeStatus': 'ready'})
    # The player's write is stored, so the client must not be told to retry it
    assert res.status_code == 202
    body = res.get_json()
    assert body['game']['inviteeStatus'] == 'ready'
    assert store.get('g1')['inviteeStatus'] == 'ready'


def test_conflicting_player_write_is_409(client, new_game, monkeypatch):
    new_game()

    def conflict(self, game_id, fields, expected_version):
        raise StaleDocumentError(game_id, 1)

    monkeypatch.setattr(GameStore, '_write', conflict)
    res = client.patch('/api/games/g1', json={'inviterStatus': 'accepted'})
    assert res.status_code == 409
    assert client.get('/api/games/g1').get_json()['inviterStatus'] == 'pending'
