from io import BytesIO

from flask import Blueprint, jsonify, request, send_file

from huntboard.errors import GameError, QuestionTimedOut
from huntboard.services.game import lifecycle
from huntboard.services.game.broadcast import hub
from huntboard.services.game.export import XLSX_MIMETYPE, build_results_workbook
from huntboard.services.game.scoreboard import build_scoreboard


game = Blueprint('game', __name__)


@game.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@game.errorhandler(QuestionTimedOut)
def handle_question_timed_out(exc):
    # The timeout was committed before the rejection
    if exc.event_id is not None:
        hub.publish_scoreboard(exc.event_id)
    return jsonify(exc.to_dict()), exc.status_code


def _iso(value):
    return value.isoformat() if value else None


def _team_id_from_body(data):
    team_id = data.get('team_id')
    try:
        return int(team_id)
    except (TypeError, ValueError):
        return None


def _publish_if_changed(result):
    event_id = result.pop('event_id', None)
    changed = result.pop('changed', True)
    if event_id is not None and changed:
        hub.publish_scoreboard(event_id)
    return result


@game.route('/question/<int:question_id>/start', methods=['POST'])
def start_question(question_id):
    data = request.get_json(silent=True) or {}
    team_id = _team_id_from_body(data)
    if team_id is None:
        return jsonify({'error': 'Team ID is required'}), 400

    result = lifecycle.start_question(team_id, question_id)
    return jsonify({
        'started': True,
        'time_started': _iso(result['time_started']),
        'existing': result['existing'],
        'message': 'Question was already started' if result['existing'] else 'Question started successfully',
    })


@game.route('/question/<int:question_id>/tips/<int:team_id>', methods=['GET'])
def get_used_tips(question_id, team_id):
    return jsonify(lifecycle.used_tips(team_id, question_id))


@game.route('/question/<int:question_id>/tip', methods=['POST'])
def request_tip(question_id):
    data = request.get_json(silent=True) or {}
    team_id = _team_id_from_body(data)
    if team_id is None or data.get('tip_number') is None:
        return jsonify({'error': 'Team ID and valid tip number (1-3) are required'}), 400

    result = lifecycle.request_tip(team_id, question_id, data.get('tip_number'))
    # Only the solution reveal changes the scoreboard (completed count)
    if result['tip_number'] < 3:
        result['changed'] = False
    return jsonify(_publish_if_changed(result))


@game.route('/question/<int:question_id>/answer', methods=['POST'])
def submit_answer(question_id):
    data = request.get_json(silent=True) or {}
    team_id = _team_id_from_body(data)
    answer = data.get('answer')
    if team_id is None or not isinstance(answer, str) or not answer.strip():
        return jsonify({'error': 'Team ID and answer are required'}), 400
    if len(answer) > lifecycle.MAX_ANSWER_LENGTH:
        return jsonify({'error': f'Answer must be at most {lifecycle.MAX_ANSWER_LENGTH} characters'}), 400

    result = lifecycle.submit_answer(team_id, question_id, answer)
    result['changed'] = result['correct'] or result['completed']
    return jsonify(_publish_if_changed(result))


@game.route('/question/<int:question_id>/complete', methods=['POST'])
def complete_question(question_id):
    data = request.get_json(silent=True) or {}
    team_id = _team_id_from_body(data)
    if team_id is None or not data.get('reason'):
        return jsonify({'error': 'Team ID and reason are required'}), 400

    result = lifecycle.complete_question(team_id, question_id, data.get('reason'))
    return jsonify(_publish_if_changed(result))


@game.route('/team/<int:team_id>/current-question', methods=['GET'])
def get_current_question(team_id):
    return jsonify(lifecycle.current_question(team_id))


@game.route('/team/<int:team_id>/progress', methods=['GET'])
def get_team_progress(team_id):
    return jsonify(lifecycle.team_progress(team_id))


@game.route('/event/<int:event_id>/scoreboard', methods=['GET'])
def get_scoreboard(event_id):
    return jsonify(build_scoreboard(event_id))


@game.route('/event/<int:event_id>/export', methods=['GET'])
def export_results(event_id):
    wb, filename = build_results_workbook(event_id)
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return send_file(buffer, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=filename)
