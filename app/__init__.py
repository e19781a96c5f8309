from flask import Flask
from .config import Config
from .errors import register_error_handlers
from .extensions import cors, init_identity, storage, workflow_client


def create_app(config_class: type[Config] = Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Extensions
    cors.init_app(app)
    storage.init_app(app)
    workflow_client.init_app(app)
    init_identity(app)

    # Errors
    register_error_handlers(app)

    # Blueprints
    from .routes.relay_api import bp as relay_api
    from .routes.tokens_api import bp as tokens_api
    from .routes.stores_api import bp as stores_api
    from .routes.presets_api import bp as presets_api
    from .routes.catalog_api import bp as catalog_api
    from .routes.user_api import bp as user_api
    from .routes.wizard_api import bp as wizard_api

    app.register_blueprint(relay_api, url_prefix="/api")
    app.register_blueprint(tokens_api, url_prefix="/api")
    app.register_blueprint(stores_api, url_prefix="/api")
    app.register_blueprint(presets_api, url_prefix="/api")
    app.register_blueprint(catalog_api, url_prefix="/api")
    app.register_blueprint(user_api, url_prefix="/api")
    app.register_blueprint(wizard_api, url_prefix="/api")

    return app
