"""
Word Morph Duel Server Application Package

Two players race to morph a start word into a target word one letter at a
time. This package holds the word graph, the duel engine, and the Flask /
Socket.IO adapters exposing them.
"""

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from .config import Config


def create_app(config_class=Config):
    """
    Application factory pattern for creating Flask app instances.

    Args:
        config_class: Configuration class to use

    Returns:
        Flask application instance and its SocketIO server
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", logger=False, engineio_logger=False)

    # Register blueprints
    from .controllers.duel_controller import duel_bp
    from .controllers.dictionary_controller import dictionary_bp

    app.register_blueprint(duel_bp, url_prefix='/api')
    app.register_blueprint(dictionary_bp, url_prefix='/api/dictionary')

    # Register WebSocket handlers and route duel snapshots to the rooms
    from .websocket.handlers import register_websocket_handlers, make_room_broadcaster
    from .services.duel_service import get_duel_service
    register_websocket_handlers(socketio)

    duel_service = get_duel_service()
    if duel_service:
        duel_service.set_broadcaster(make_room_broadcaster(socketio))

    # Store socketio instance for use in other modules
    app.socketio = socketio

    return app, socketio
