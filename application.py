"""
Start point for running the keeper flask app
"""
import sys
import threading

from dotenv import load_dotenv

load_dotenv()

from app import create_app
from app.keeper.logging_config import global_exception_handler, thread_exception_handler

sys.excepthook = global_exception_handler
threading.excepthook = thread_exception_handler

application = create_app()

if __name__ == "__main__":
    application.run(host="0.0.0.0", port=8080, debug=False)
