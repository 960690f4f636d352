import os
from flask import Flask
from clinic_chat.extensions import db, migrate, jwt, limiter, cors
from clinic_chat.utils.error_handlers import register_error_handlers
from clinic_chat.commands import register_commands
from config import config

def create_app(config_name=None):
    app = Flask(__name__)
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    config_class = config[config_name]
    app.config.from_object(config_class)

    # Register every model with SQLAlchemy before create_all / migrations
    from clinic_chat import models  # noqa: F401

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    cors.init_app(
        app,
        origins=app.config['ALLOWED_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-Requested-With'],
        methods=['GET', 'POST', 'DELETE', 'OPTIONS']
    )

    # Initialize app with config
    config_class.init_app(app)

    # Register blueprints
    from clinic_chat.api import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    # Register error handlers and commands
    register_error_handlers(app)
    register_commands(app)

    return app
