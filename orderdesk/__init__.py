import logging

import click
from flask import Flask
from flask.cli import AppGroup, with_appcontext
from sqlalchemy import event

from .config import DevelopmentConfig
from .errors import register_error_handlers
from .extensions import db, migrate

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

outbox_cli = AppGroup('outbox', help='Post-commit event queue.')


def create_app(config_class=DevelopmentConfig):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(level=app.config['LOG_LEVEL'], format=LOG_FORMAT)
    logging.getLogger('orderdesk').setLevel(app.config['LOG_LEVEL'])

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models
    from orderdesk import models  # noqa: F401

    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            _configure_sqlite(db.engine)

    from orderdesk.services.notification_service import NotificationService
    app.extensions['notification_sink'] = NotificationService()

    register_error_handlers(app)

    app.cli.add_command(outbox_cli)
    app.cli.add_command(seed_command)

    return app


def _configure_sqlite(engine):
    # pysqlite opens transactions on its own and breaks SAVEPOINT;
    # hand BEGIN over to SQLAlchemy and turn on FK enforcement.
    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


@outbox_cli.command('dispatch')
@click.option('--limit', default=100, show_default=True, help='Maximum events to process.')
def dispatch_outbox(limit):
    """Deliver pending outbox events."""
    from orderdesk.services.outbox import OutboxService

    done = OutboxService.dispatch_pending(limit=limit)
    click.echo(f"Dispatched {done} event(s)")


@click.command('seed')
@with_appcontext
def seed_command():
    """Create tables and load demo users and products."""
    from orderdesk.seed import seed_demo_data

    db.create_all()
    created = seed_demo_data()
    click.echo(f"Seeded {created} record(s)" if created else "Database already contains data.")
