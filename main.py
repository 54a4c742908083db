import logging
import os

from event_portal import create_app

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")), debug=os.environ.get("FLASK_DEBUG") == "1")
