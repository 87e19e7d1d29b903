"""
Word Morph Duel Server - Main Entry Point

This is the main entry point for the duel server.
It initializes all services and starts the Flask-SocketIO application.
"""

import threading
import time
from duel_server import create_app
from duel_server.config import Config
from duel_server.services.dictionary_service import initialize_dictionary_service, RemoteDictionaryOracle
from duel_server.services.duel_service import initialize_duel_service, get_duel_service
from duel_server.utils.game_logger import game_logger


def finished_match_cleanup_worker(interval_seconds, ttl_seconds):
    """
    Background worker that periodically evicts concluded duels from memory.
    Runs every interval_seconds; a duel is kept ttl_seconds after it finishes
    so both clients can still fetch the final state.
    """
    game_logger.logger.info("Finished match cleanup worker started")
    while True:
        try:
            duel_service = get_duel_service()
            if duel_service:
                evicted = duel_service.evict_finished_matches(ttl_seconds)
                if evicted:
                    game_logger.logger.info(f"Cleanup: evicted {len(evicted)} finished duel(s)")
                    for match_id in evicted:
                        game_logger.log_game_event(match_id, 'duel_evicted', reason='finished_ttl')
        except Exception as e:
            game_logger.logger.error(f"Error in finished match cleanup worker: {e}")

        time.sleep(interval_seconds)


def main():
    """Main function to initialize services and start the server."""
    try:
        print("Initializing services...")

        dictionary_service = initialize_dictionary_service()
        print(f"✓ Dictionary loaded: {dictionary_service.get_stats()['total_words']} words")

        if Config.DICTIONARY_SERVICE_URL:
            oracle = RemoteDictionaryOracle(Config.DICTIONARY_SERVICE_URL, Config.DICTIONARY_TIMEOUT_SECONDS)
            print(f"✓ Validating words against {Config.DICTIONARY_SERVICE_URL}")
        else:
            oracle = dictionary_service
            print("✓ Validating words against the bundled dictionary")

        initialize_duel_service(oracle, dictionary_service.graph)
        print("✓ Duel service initialized successfully")

        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        cleanup_thread = threading.Thread(
            target=finished_match_cleanup_worker,
            args=(Config.CLEANUP_INTERVAL_SECONDS, Config.FINISHED_MATCH_TTL_SECONDS),
            daemon=True
        )
        cleanup_thread.start()
        print(f"✓ Cleanup worker started - checking every {Config.CLEANUP_INTERVAL_SECONDS} seconds")

        game_logger.logger.info("Word Morph Duel Server starting")

        print(f"\nStarting Word Morph Duel Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print("=" * 50)

        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("Word Morph Duel Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise


if __name__ == '__main__':
    main()
