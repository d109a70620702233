# app.py
from flask import Flask
from config.settings import get_config
from extensions.database import db, migrate
from extensions.logger import init_logger
from services.moderation_pipeline import init_moderation
from controllers.comment_controller import comment_bp
from controllers.moderation_controller import moderation_bp
from utils.response import json_response
from utils.exceptions import BizError

import models  # noqa: F401  register tables with SQLAlchemy


def create_app(config_name="development"):
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # extensions
    db.init_app(app)
    migrate.init_app(app, db)
    init_logger(app)
    init_moderation(app)
    app.logger.info("database URI: %s", app.config["SQLALCHEMY_DATABASE_URI"])

    # comments, threads, likes, reports
    app.register_blueprint(comment_bp)
    # moderation queue, moderator actions, report review
    app.register_blueprint(moderation_bp)

    @app.get("/health")
    def health():
        tracker = app.extensions["behavior_tracker"]
        return json_response(data={"status": "ok", "tracked_identities": len(tracker)})

    # error handling
    @app.errorhandler(404)
    def not_found(e):
        return json_response(message="Not found", code=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return json_response(message="Method not allowed", code=405)

    @app.errorhandler(500)
    def server_error(e):
        return json_response(message="Internal server error", code=500)

    @app.errorhandler(BizError)
    def _biz_err(e: BizError):
        return json_response(code=e.code, message=e.message, data=e.data, error_code=e.error_code)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5001, debug=True)
