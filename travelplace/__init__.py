import os

from flask import Flask, render_template
from flask_sqlalchemy import SQLAlchemy
from dotenv import load_dotenv

from .logger import setup_logging

db = SQLAlchemy()


def create_app(test_config=None):
    load_dotenv()

    app = Flask(
        __name__,
        template_folder="../templates",
    )

    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///app.sqlite3")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["BACKEND_API_URL"] = os.getenv("BACKEND_API_URL", "http://localhost:8080/api/v1")
    app.config["BACKEND_TIMEOUT"] = float(os.getenv("BACKEND_TIMEOUT", "30"))
    app.config["BOOKING_TTL_HOURS"] = float(os.getenv("BOOKING_TTL_HOURS", "24"))
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    app.config["LOG_DIR"] = os.getenv("LOG_DIR") or None
    # callable (service, reference) -> result; None means the HTTP backend
    app.config["PAYMENT_VERIFIER"] = None

    if test_config:
        app.config.update(test_config)

    setup_logging(app.config["LOG_LEVEL"], app.config["LOG_DIR"])

    db.init_app(app)

    @app.route("/")
    def home():
        return render_template("index.html")

    # step guard runs before any view touches the booking session
    from .guard import guard_request
    app.before_request(guard_request)

    # register blueprints
    from .payments import payments_bp
    app.register_blueprint(payments_bp)

    from .search import search_bp
    app.register_blueprint(search_bp)

    from .checkout import checkout_bp
    app.register_blueprint(checkout_bp)

    # create tables
    with app.app_context():
        from . import models
        db.create_all()

    return app
