from mathduel import db

# Per-player status lifecycle, in order. Statuses only ever move forward.
STATUSES = ('pending', 'accepted', 'ready', 'ingame', 'finished', 'ended')


def _serialize_time(value):
    return value.isoformat() if value is not None else None


class Game(db.Model):
    """Two-player game document.

    Column names keep the camelCase field names of the document wire
    contract; Python attributes are snake_case.
    """
    __tablename__ = 'games'
    game_id = db.Column('gameId', db.String(128), primary_key=True)
    inviter_id = db.Column('inviterId', db.String(128), nullable=False)
    invitee_id = db.Column('inviteeId', db.String(128), nullable=False)
    inviter_status = db.Column('inviterStatus', db.String(16), default='pending')
    invitee_status = db.Column('inviteeStatus', db.String(16), default='pending')
    to_status = db.Column('toStatus', db.String(16), nullable=True)
    from_status = db.Column('fromStatus', db.String(16), nullable=True)
    scores = db.Column(db.JSON, nullable=False, default=lambda: {'user1': 0, 'user2': 0})
    updated_at = db.Column('updatedAt', db.DateTime(timezone=True), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self):
        doc = {
            'gameId': self.game_id,
            'inviterId': self.inviter_id,
            'inviteeId': self.invitee_id,
            'inviterStatus': self.inviter_status,
            'inviteeStatus': self.invitee_status,
            'scores': dict(self.scores or {}),
            'updatedAt': _serialize_time(self.updated_at),
        }
        # Signaling fields only exist once written
        if self.to_status is not None:
            doc['toStatus'] = self.to_status
        if self.from_status is not None:
            doc['fromStatus'] = self.from_status
        return doc


class DailyChallenge(db.Model):
    __tablename__ = 'daily_challenges'
    # The date key is the uniqueness boundary: one challenge per day
    date = db.Column(db.String(10), primary_key=True)
    question = db.Column(db.String(255), nullable=False)
    answer = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self):
        return {
            'date': self.date,
            'question': self.question,
            'answer': self.answer,
            'created_at': _serialize_time(self.created_at),
        }
