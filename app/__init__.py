"""
Creates and returns main flask app
"""

import os
import threading

from flask import Flask, jsonify
from flask_cors import CORS

from .keeper.routes import keeper, start_keeper


def create_app():
    """Create Flask app and start the keeper for the configured chain"""
    app = Flask(__name__)
    CORS(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "healthy"}), 200

    chain_id = int(os.environ.get("CHAIN_ID", 8453))

    keeper_thread = threading.Thread(target=start_keeper, args=(chain_id,), name="keeper")
    keeper_thread.start()

    # Register the keeper blueprint after starting the loop
    app.register_blueprint(keeper, url_prefix="/keeper")

    return app
