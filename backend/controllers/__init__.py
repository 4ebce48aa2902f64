from .admin_controller import admin_bp


def register_controllers(app):
    app.register_blueprint(admin_bp)
