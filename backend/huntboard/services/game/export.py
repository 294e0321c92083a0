from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from huntboard import db
from huntboard.errors import NotFound
from huntboard.models import Event, Question, Team, TeamProgress

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

COLUMNS = [
    ('Team Name', 20),
    ('Question', 30),
    ('Difficulty', 10),
    ('Attempt 1', 15),
    ('Attempt 2', 15),
    ('Attempt 3', 15),
    ('Tips Used', 10),
    ('Correct', 10),
    ('Points', 10),
    ('Time Started', 20),
    ('Time Answered', 20),
]


def build_results_workbook(event_id):
    """One sheet, one row per progress row of the event.

    Returns ``(workbook, filename)``. Teams that never touched a question
    have no rows.
    """
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFound('Event not found')

    rows = (
        db.session.query(TeamProgress, Team.name, Question.title, Question.difficulty)
        .join(Team, TeamProgress.team_id == Team.id)
        .join(Question, TeamProgress.question_id == Question.id)
        .filter(Team.event_id == event_id)
        .order_by(Team.name, Question.order_index, Question.id)
        .all()
    )

    wb = Workbook()
    ws = wb.active
    ws.title = 'Game Results'

    ws.append([title for title, _width in COLUMNS])
    header_font = Font(bold=True)
    center = Alignment(horizontal='center', vertical='center')
    for col, (_title, width) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.alignment = center
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = 'A2'

    for progress, team_name, title, difficulty in rows:
        ws.append([
            team_name,
            title,
            difficulty,
            progress.attempt_1,
            progress.attempt_2,
            progress.attempt_3,
            progress.used_tip or 0,
            bool(progress.correct),
            progress.points_awarded or 0,
            progress.time_started,
            progress.time_answered,
        ])

    return wb, f'{event.name}_results.xlsx'
