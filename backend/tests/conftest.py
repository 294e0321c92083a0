import os
import sys
from datetime import timedelta
from types import SimpleNamespace

import pytest

# Ensure the backend root (containing the `huntboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from huntboard import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = ['http://localhost:3000']
    SCOREBOARD_REPUSH_SEC = 30
    ENFORCE_QUESTION_DEADLINE = False
    DEADLINE_GRACE_SEC = 5
    TIPS_IN_ORDER = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import huntboard.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def _make_event(name, start_offset=timedelta(hours=-1), team_names=('Alpha', 'Bravo', 'Charlie')):
    from huntboard.models import Event, Question, Team, utcnow

    event = Event(name=name, start_time=utcnow() + start_offset)
    db.session.add(event)
    db.session.flush()

    teams = [Team(name=team_name, event_id=event.id) for team_name in team_names]
    questions = [
        Question(event_id=event.id, title='Capital', difficulty='medium', solution='Paris',
                 tip_1='It is in Europe', tip_2='City of light', tip_3='Paris',
                 time_limit_seconds=60, order_index=0),
        Question(event_id=event.id, title='Machine', difficulty='hard', solution='Enigma',
                 tip_1='German', tip_2='Rotors', tip_3='Enigma',
                 time_limit_seconds=120, order_index=1),
        Question(event_id=event.id, title='Warm-up', difficulty='easy', solution='42',
                 tip_1='A number', tip_2='Douglas Adams', tip_3='42',
                 time_limit_seconds=30, order_index=2),
    ]
    db.session.add_all(teams + questions)
    db.session.commit()
    return SimpleNamespace(
        event_id=event.id,
        team_ids=[t.id for t in teams],
        question_ids=[q.id for q in questions],
    )


@pytest.fixture()
def seeded(flask_app):
    """A started event with three teams and three questions."""
    return _make_event('Test Hunt')


@pytest.fixture()
def future_event(flask_app):
    """An event that has not started yet."""
    return _make_event('Later Hunt', start_offset=timedelta(hours=2), team_names=('Delta',))
