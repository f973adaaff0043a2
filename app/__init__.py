import click
from flask import Flask
from flask.cli import with_appcontext
from werkzeug.exceptions import NotFound
from werkzeug.middleware.dispatcher import DispatcherMiddleware

from config import Config, _normalise_prefix

# Importing the ``app.api`` subpackage rebinds ``api`` on this package.
from .extensions import api as rest_api, db, migrate
from .workspace import get_workspace, init_workspace


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)

    url_prefix = _normalise_prefix(app.config.get("URL_PREFIX", ""))
    app.config["URL_PREFIX"] = url_prefix

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations
    from .api import register_namespaces

    register_namespaces(rest_api)
    rest_api.init_app(app)

    workspace = init_workspace(app)
    app.logger.info(
        "Workspace ready for %s (policy %s)", workspace.class_name, workspace.store.policy.value
    )

    with app.app_context():
        db.create_all()

    if url_prefix:
        app.wsgi_app = DispatcherMiddleware(NotFound(), {url_prefix: app.wsgi_app})

    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed a demo timetable save for development."""
        from .seed import seed_data

        created = seed_data()
        if created:
            click.echo(f"Sauvegarde « {created.name} » créée.")
        else:
            click.echo("Une sauvegarde de démonstration existe déjà.")

    @app.cli.command("autofill")
    @click.option("--level", default="CM1", show_default=True, help="Niveau de la classe (CP..CM2).")
    @with_appcontext
    def autofill(level: str) -> None:
        """Generate a week for LEVEL and print it."""
        workspace = get_workspace()
        try:
            workspace.set_class_name(level.upper())
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--level") from exc
        report = workspace.autofill()
        for day in workspace.days:
            if not day.enabled:
                continue
            click.echo(day.label)
            for block in sorted(workspace.store.blocks, key=lambda item: item.start_minutes):
                if block.day == day.key:
                    click.echo(f"  {block.start:>5} - {block.end:>5}  {block.subject}")
        click.echo(report.summary)

    return app


__all__ = ["create_app", "db"]
