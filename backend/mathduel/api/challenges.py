from flask import Blueprint, jsonify, current_app
from mathduel.services.challenges.daily import challenge_date_key, get_challenge


challenges = Blueprint('challenges', __name__)


@challenges.route('/today', methods=['GET'])
def get_today_challenge():
    date_key = challenge_date_key(tz=current_app.config.get('DAILY_CHALLENGE_TZ', 'Europe/Berlin'))
    challenge = get_challenge(date_key)
    if not challenge:
        return jsonify({'error': f'No challenge for {date_key} yet'}), 404
    return jsonify(challenge), 200


@challenges.route('/<string:date_key>', methods=['GET'])
def get_challenge_by_date(date_key):
    try:
        challenge = get_challenge(date_key)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    if not challenge:
        return jsonify({'error': f'No challenge for {date_key}'}), 404
    return jsonify(challenge), 200
