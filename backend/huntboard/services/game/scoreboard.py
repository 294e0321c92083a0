from datetime import datetime

from sqlalchemy import case, func

from huntboard import db
from huntboard.models import Question, Team, TeamProgress


def _iso(value):
    if value is None:
        return None
    # SQLite hands MAX() over a DateTime column back as a string
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.isoformat()


def build_scoreboard(event_id: int) -> list:
    """Ranked per-team totals for one event.

    Teams without any progress rows are included with zero totals. Ranking
    is total points, then questions solved, then the earliest last correct
    answer (finishing sooner wins a full tie).
    """
    total_points = func.coalesce(func.sum(TeamProgress.points_awarded), 0)
    questions_solved = func.count(case((TeamProgress.correct.is_(True), 1)))
    completed_questions = func.count(case((TeamProgress.completed.is_(True), 1)))
    last_answer_time = func.max(TeamProgress.time_answered)

    rows = (
        db.session.query(
            Team.id,
            Team.name,
            Team.logo_url,
            total_points.label('total_points'),
            questions_solved.label('questions_solved'),
            completed_questions.label('completed_questions'),
            last_answer_time.label('last_answer_time'),
        )
        .outerjoin(TeamProgress, TeamProgress.team_id == Team.id)
        .filter(Team.event_id == event_id)
        .group_by(Team.id, Team.name, Team.logo_url)
        .order_by(
            total_points.desc(),
            questions_solved.desc(),
            case((last_answer_time.is_(None), 1), else_=0),
            last_answer_time.asc(),
            Team.name.asc(),
            Team.id.asc(),
        )
        .all()
    )

    return [
        {
            'rank': idx,
            'team_id': row.id,
            'name': row.name,
            'logo_url': row.logo_url,
            'total_points': int(row.total_points or 0),
            'questions_solved': int(row.questions_solved or 0),
            'completed_questions': int(row.completed_questions or 0),
            'last_answer_time': _iso(row.last_answer_time),
        }
        for idx, row in enumerate(rows, start=1)
    ]


def event_stats(event_id: int) -> dict:
    return {
        'total_teams': Team.query.filter_by(event_id=event_id).count(),
        'total_questions': Question.query.filter_by(event_id=event_id).count(),
    }
