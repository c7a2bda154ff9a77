from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The store handle is constructed once per app and injected where needed
    from mathduel.services.games.store import ChangeFeed, GameStore
    from mathduel.services.games.triggers import register_game_triggers
    store = GameStore(ChangeFeed(logger=flask_app.logger))
    flask_app.extensions['game_store'] = store
    register_game_triggers(flask_app, store)

    from mathduel.main import main
    flask_app.register_blueprint(main)

    from mathduel.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from mathduel.api.challenges import challenges
    flask_app.register_blueprint(challenges, url_prefix='/api/challenges')

    from mathduel.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            store.create({
                'gameId': 'demo',
                'inviterId': 'player-one',
                'inviteeId': 'player-two',
            })
            print('Database has been reset and seeded!')

    @click.command('create-daily-challenge')
    @click.option('--date', 'date_key', default=None, help='Calendar date (YYYY-MM-DD); defaults to today.')
    @click.option('--mode', default=None, type=click.Choice(['advanced', 'expert']))
    def create_daily_challenge_command(date_key, mode):
        """Creates the challenge for a day unless one already exists."""
        from mathduel.services.challenges.daily import ensure_daily_challenge, generator_from_config
        with flask_app.app_context():
            generator = generator_from_config(flask_app.config, mode=mode)
            challenge, created = ensure_daily_challenge(date_key, generator=generator)
            state = 'created' if created else 'already exists'
            print(f"{challenge['date']}: {challenge['question']} = {challenge['answer']} ({state})")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(create_daily_challenge_command)

    return flask_app
