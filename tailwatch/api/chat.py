"""
Chat API endpoint.

POST /api/chat
    Body: {"message": str, "history": [{"role": ..., "content": ...}, ...]}

Always answers with {"response": ..., "timestamp": ...}. Chat provider
failures still return 200 with a user-facing message and an "error" tag
so the transcript can show them inline.
"""

import logging

from flask import Blueprint, jsonify, request

from tailwatch.api.flights import utc_timestamp
from tailwatch.services.chat import chat_service

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__, url_prefix='/api/chat')


@chat_bp.route('', methods=['POST'])
def chat():
    """Answer a question about the aircraft."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON body required'}), 400

    message = data.get('message')
    if not isinstance(message, str) or not message.strip():
        return jsonify({'error': 'Message is required'}), 400

    history = data.get('history') or []
    if not isinstance(history, list):
        return jsonify({'error': 'history must be a list'}), 400

    reply = chat_service.reply(message.strip(), history)

    body = {
        'response': reply.response,
        'timestamp': utc_timestamp(),
    }
    if reply.error:
        body['error'] = reply.error

    return jsonify(body)
