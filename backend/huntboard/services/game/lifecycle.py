"""Per-team, per-question progress lifecycle.

Every mutation of ``team_progress`` goes through this module. Rows are
created lazily by the first ``start``/``tip``/``answer``/``complete`` call
for a pair, always via :func:`_ensure_progress` (insert, and on a
uniqueness conflict re-read the winner's row). Mutations after creation
re-read the row with ``SELECT ... FOR UPDATE`` so concurrent calls for the
same pair are serialized by the database.
"""

import random

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from huntboard import db
from huntboard.errors import (
    AlreadyAnswered,
    AlreadyCompleted,
    EventNotStarted,
    InvalidCompletionReason,
    InvalidTipNumber,
    MaxAttemptsReached,
    NotFound,
    QuestionTimedOut,
)
from huntboard.models import Question, Team, TeamProgress, utcnow
from .scoring import SOLUTION_TIP, calculate_points, elapsed_seconds

MAX_ATTEMPTS = 3
MAX_ANSWER_LENGTH = 256
TIP_NUMBERS = (1, 2, 3)
COMPLETION_REASONS = ('timeout', 'max_attempts', 'solution')


def _load_pair(team_id, question_id, require_started=True):
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFound('Team not found')
    question = db.session.get(Question, question_id)
    if question is None or question.event_id != team.event_id:
        raise NotFound('Question not found')
    if require_started and not team.event.has_started:
        raise EventNotStarted()
    return team, question


def _find_progress(team_id, question_id, for_update=False):
    query = TeamProgress.query.filter_by(team_id=team_id, question_id=question_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def _ensure_progress(team_id, question_id):
    """Return ``(progress, created)`` for the pair, inserting it if missing."""
    progress = _find_progress(team_id, question_id)
    if progress is not None:
        return progress, False

    progress = TeamProgress(team_id=team_id, question_id=question_id, time_started=utcnow())
    db.session.add(progress)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        progress = _find_progress(team_id, question_id)
        if progress is None:
            raise
        current_app.logger.info(f"[progress-race] team={team_id} question={question_id} reusing concurrent insert")
        return progress, False
    current_app.logger.info(f"[progress-new] team={team_id} question={question_id} started={progress.time_started}")
    return progress, True


def _lock_progress(team_id, question_id):
    _ensure_progress(team_id, question_id)
    return _find_progress(team_id, question_id, for_update=True)


def _mark_completed(progress, reason):
    progress.completed = True
    progress.completed_reason = reason


def _deadline_passed(progress, question, now):
    if not current_app.config.get('ENFORCE_QUESTION_DEADLINE'):
        return False
    if not question.time_limit_seconds or progress.time_started is None:
        return False
    grace = int(current_app.config.get('DEADLINE_GRACE_SEC', 0))
    return elapsed_seconds(progress.time_started, now) > question.time_limit_seconds + grace


def _expire(progress, team_id, question_id, event_id):
    _mark_completed(progress, 'timeout')
    db.session.commit()
    current_app.logger.info(f"[deadline] team={team_id} question={question_id} auto-completed as timeout")
    raise QuestionTimedOut(event_id)


def answer_matches(submitted, solution):
    return (submitted or '').strip().lower() == (solution or '').strip().lower()


def _start_once(team_id, question_id):
    _load_pair(team_id, question_id)
    return _ensure_progress(team_id, question_id)


def start_question(team_id, question_id):
    """Idempotently start a question; the first caller fixes ``time_started``.

    A transient store failure anywhere in the call, lookups included, is
    retried once.
    """
    try:
        progress, created = _start_once(team_id, question_id)
    except OperationalError as exc:
        db.session.rollback()
        current_app.logger.warning(f"[start-retry] team={team_id} question={question_id} store error: {exc}")
        progress, created = _start_once(team_id, question_id)
    return {'time_started': progress.time_started, 'existing': not created}


def request_tip(team_id, question_id, tip_number):
    try:
        tip_number = int(tip_number)
    except (TypeError, ValueError):
        raise InvalidTipNumber()
    if tip_number not in TIP_NUMBERS:
        raise InvalidTipNumber()

    team, question = _load_pair(team_id, question_id)
    in_order = current_app.config.get('TIPS_IN_ORDER')
    if in_order:
        # Reject skip-ahead before the row exists
        existing = _find_progress(team_id, question_id)
        used = (existing.used_tip or 0) if existing else 0
        if tip_number > used + 1:
            raise InvalidTipNumber(f'Tip {used + 1} must be revealed first')

    progress = _lock_progress(team_id, question_id)
    try:
        if progress.completed:
            raise AlreadyCompleted()
        if _deadline_passed(progress, question, utcnow()):
            _expire(progress, team_id, question_id, team.event_id)

        used = progress.used_tip or 0
        if in_order and tip_number > used + 1:
            raise InvalidTipNumber(f'Tip {used + 1} must be revealed first')

        changed = used < tip_number
        if changed:
            progress.used_tip = tip_number
            if tip_number >= SOLUTION_TIP:
                _mark_completed(progress, 'solution')
        result = {
            'tip': question.tip_text(tip_number),
            'tip_number': tip_number,
            'used_tip': progress.used_tip,
            'completed': progress.completed,
            'changed': changed,
            'event_id': team.event_id,
        }
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if changed:
        current_app.logger.info(f"[tip] team={team_id} question={question_id} used_tip={tip_number}")
    return result


def submit_answer(team_id, question_id, text):
    team, question = _load_pair(team_id, question_id)
    progress = _lock_progress(team_id, question_id)
    try:
        if progress.correct:
            raise AlreadyAnswered()
        slot = progress.next_free_slot()
        if slot is None:
            raise MaxAttemptsReached()
        if progress.completed:
            raise AlreadyCompleted()
        now = utcnow()
        if _deadline_passed(progress, question, now):
            _expire(progress, team_id, question_id, team.event_id)

        setattr(progress, slot, text)
        if answer_matches(text, question.solution):
            points = calculate_points(
                question.difficulty,
                question.time_limit_seconds,
                elapsed_seconds(progress.time_started, now),
                progress.used_tip or 0,
            )
            progress.correct = True
            progress.time_answered = now
            progress.points_awarded = points
            _mark_completed(progress, 'solved')
            result = {'correct': True, 'points': points}
        else:
            remaining = MAX_ATTEMPTS - progress.attempts_used
            if remaining <= 0:
                _mark_completed(progress, 'max_attempts')
                progress.points_awarded = 0
            result = {
                'correct': False,
                'attempts_remaining': remaining,
                'message': 'No more attempts remaining' if remaining <= 0 else 'Incorrect answer',
            }
        result['completed'] = progress.completed
        result['event_id'] = team.event_id
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"[answer] team={team_id} question={question_id} slot={slot} correct={result['correct']} "
        f"points={result.get('points', 0)} completed={result['completed']}"
    )
    return result


def complete_question(team_id, question_id, reason):
    """Move the pair to a terminal state without a matching answer.

    A second call on an already completed row changes nothing.
    """
    if reason not in COMPLETION_REASONS:
        raise InvalidCompletionReason()
    team, _question = _load_pair(team_id, question_id, require_started=False)
    progress = _lock_progress(team_id, question_id)
    try:
        changed = not progress.completed
        if changed:
            _mark_completed(progress, reason)
        result = {
            'completed': True,
            'reason': progress.completed_reason,
            'changed': changed,
            'event_id': team.event_id,
        }
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if changed:
        current_app.logger.info(f"[complete] team={team_id} question={question_id} reason={reason}")
    return result


def used_tips(team_id, question_id):
    """Texts of every tip already revealed to the team, in order."""
    _team, question = _load_pair(team_id, question_id, require_started=False)
    progress = _find_progress(team_id, question_id)
    used = (progress.used_tip or 0) if progress else 0
    return {'tips': [question.tip_text(n) for n in range(1, used + 1)], 'used_tip': used}


def _ordered_questions(team):
    event = team.event
    questions = sorted(
        event.questions,
        key=lambda q: (q.order_index is None, q.order_index or 0, q.id),
    )
    if event.use_random_order:
        # Stable per team so reloads keep the same sequence
        random.Random(f'{event.id}-{team.id}').shuffle(questions)
    return questions


def current_question(team_id):
    """The question a team should be looking at right now.

    An open (started, not completed) question wins; otherwise the first
    question the team has not touched. Solution and tips are never part of
    the payload.
    """
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFound('Team not found')
    if not team.event.has_started:
        raise EventNotStarted()

    questions = _ordered_questions(team)
    if not questions:
        raise NotFound('No questions found for this event')

    rows = {p.question_id: p for p in TeamProgress.query.filter_by(team_id=team.id).all()}
    target = next((q for q in questions if q.id in rows and not rows[q.id].completed), None)
    if target is None:
        target = next((q for q in questions if q.id not in rows), None)
    if target is None:
        return {'completed': True, 'message': 'All questions completed!'}

    payload = target.to_public_dict()
    if target.id in rows:
        payload['progress'] = rows[target.id].summary()
    return payload


def team_progress(team_id):
    if db.session.get(Team, team_id) is None:
        raise NotFound('Team not found')
    rows = (
        db.session.query(TeamProgress, Question.title, Question.difficulty)
        .join(Question, TeamProgress.question_id == Question.id)
        .filter(TeamProgress.team_id == team_id)
        .order_by(Question.order_index, Question.id)
        .all()
    )
    result = []
    for progress, title, difficulty in rows:
        row = progress.to_dict()
        row['question_title'] = title
        row['difficulty'] = difficulty
        result.append(row)
    return result
