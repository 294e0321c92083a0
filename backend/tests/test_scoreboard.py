from datetime import datetime, timedelta

from huntboard import db
from huntboard.models import Question, Team, TeamProgress
from huntboard.services.game.scoreboard import build_scoreboard, event_stats

T0 = datetime(2030, 1, 1, 12, 0, 0)


def _solved(team_id, question_id, points, answered_at):
    return TeamProgress(
        team_id=team_id, question_id=question_id, time_started=T0,
        time_answered=answered_at, correct=True, completed=True,
        completed_reason='solved', points_awarded=points, attempt_1='x',
    )


def test_ranking_rewards_points_then_solves_then_speed(seeded):
    event_id = seeded.event_id
    alpha, bravo, charlie = seeded.team_ids
    q1, q2, q3 = seeded.question_ids
    late = Team(name='Late', event_id=event_id)
    db.session.add(late)
    db.session.flush()

    db.session.add_all([
        # Bravo: 300 points, 2 solved, last answer at t=20
        _solved(bravo, q1, 150, T0 + timedelta(seconds=5)),
        _solved(bravo, q2, 150, T0 + timedelta(seconds=20)),
        # Alpha: 300 points, 2 solved, last answer at t=10
        _solved(alpha, q1, 150, T0 + timedelta(seconds=3)),
        _solved(alpha, q2, 150, T0 + timedelta(seconds=10)),
        # Charlie: 300 points, 3 solved, last answer latest of all
        _solved(charlie, q1, 100, T0 + timedelta(seconds=30)),
        _solved(charlie, q2, 100, T0 + timedelta(seconds=40)),
        _solved(charlie, q3, 100, T0 + timedelta(seconds=50)),
    ])
    db.session.commit()

    board = build_scoreboard(event_id)

    assert [row['name'] for row in board] == ['Charlie', 'Alpha', 'Bravo', 'Late']
    assert [row['rank'] for row in board] == [1, 2, 3, 4]
    assert [row['total_points'] for row in board] == [300, 300, 300, 0]
    assert [row['questions_solved'] for row in board] == [3, 2, 2, 0]
    assert board[3]['last_answer_time'] is None
    assert board[3]['completed_questions'] == 0


def test_completed_but_unsolved_rows_count_separately(seeded):
    alpha = seeded.team_ids[0]
    q1, q2, _ = seeded.question_ids
    db.session.add_all([
        _solved(alpha, q1, 180, T0 + timedelta(seconds=15)),
        TeamProgress(team_id=alpha, question_id=q2, time_started=T0, completed=True,
                     completed_reason='timeout'),
    ])
    db.session.commit()

    row = next(r for r in build_scoreboard(seeded.event_id) if r['team_id'] == alpha)
    assert row['total_points'] == 180
    assert row['questions_solved'] == 1
    assert row['completed_questions'] == 2
    assert row['last_answer_time'] == (T0 + timedelta(seconds=15)).isoformat()


def test_last_answer_time_is_iso_8601(seeded):
    alpha = seeded.team_ids[0]
    answered = T0 + timedelta(seconds=42, microseconds=250000)
    db.session.add(_solved(alpha, seeded.question_ids[0], 100, answered))
    db.session.commit()

    row = next(r for r in build_scoreboard(seeded.event_id) if r['team_id'] == alpha)
    assert row['last_answer_time'] == '2030-01-01T12:00:42.250000'
    assert datetime.fromisoformat(row['last_answer_time']) == answered


def test_scoreboard_is_scoped_to_event(seeded, future_event):
    db.session.add(_solved(future_event.team_ids[0], future_event.question_ids[0], 500, T0))
    db.session.commit()

    board = build_scoreboard(seeded.event_id)
    assert {row['team_id'] for row in board} == set(seeded.team_ids)
    assert all(row['total_points'] == 0 for row in board)
    assert build_scoreboard(9999) == []


def test_event_stats(seeded):
    db.session.add(Question(event_id=seeded.event_id, title='Bonus', solution='b', time_limit_seconds=10))
    db.session.commit()
    assert event_stats(seeded.event_id) == {'total_teams': 3, 'total_questions': 4}
