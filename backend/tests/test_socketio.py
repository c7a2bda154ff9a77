def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Flush any initial events
    try:
        sio_client.get_received('/ws')
    except Exception:
        pass

    # Join a room and expect a joined ack
    sio_client.emit('join_game', {'game_id': 'g1'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] in ('connected', 'joined') for pkt in received)


def test_join_requires_game_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_state_update_after_reconcile(sio_client, client, new_game):
    new_game(inviterStatus='ready', inviteeStatus='accepted')
    sio_client.emit('join_game', {'game_id': 'g1'}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    # Reconciler patches the game -> subscribers of the room are notified
    client.patch('/api/games/g1', json={'inviteeStatus': 'ready'})
    events = sio_client.get_received('/ws')
    updates = [e for e in events if e['name'] == 'state_update']
    assert updates
    assert updates[0]['args'][0] == {'game_id': 'g1'}


def test_no_state_update_without_patch(sio_client, client, new_game):
    new_game(inviterStatus='ingame', inviteeStatus='ingame')
    sio_client.emit('join_game', {'game_id': 'g1'}, namespace='/ws')
    sio_client.get_received('/ws')

    client.patch('/api/games/g1', json={'scores.user1': 1})
    events = sio_client.get_received('/ws')
    assert not any(e['name'] == 'state_update' for e in events)
