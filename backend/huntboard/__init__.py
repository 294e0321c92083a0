from datetime import timedelta

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from huntboard.services.game.broadcast import hub
    hub.init_app(flask_app, socketio)

    from huntboard.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from huntboard.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo event."""
        from huntboard.models import Event, Team, Question, utcnow
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            event = Event(name='Demo Hunt', start_time=utcnow() - timedelta(minutes=1))
            db.session.add(event)
            db.session.flush()

            for name in ['Red Herrings', 'Blue Notes', 'Green Lanterns']:
                db.session.add(Team(name=name, event_id=event.id))

            seed_questions = [
                ('Warm-up', 'easy', 'paris', 120),
                ('Cipher', 'medium', 'enigma', 300),
                ('Final lock', 'hard', 'turing', 600),
            ]
            for idx, (title, difficulty, solution, limit) in enumerate(seed_questions):
                db.session.add(Question(
                    event_id=event.id,
                    title=title,
                    difficulty=difficulty,
                    solution=solution,
                    tip_1=f'{title}: first hint',
                    tip_2=f'{title}: second hint',
                    tip_3=f'The answer is {solution}',
                    time_limit_seconds=limit,
                    order_index=idx,
                ))

            db.session.commit()
            print(f'Database has been reset and seeded! event_id={event.id}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
