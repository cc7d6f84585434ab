"""CLI commands for the application."""

import click
from flask.cli import with_appcontext

from drillsync.extensions import db
from drillsync.services.container import get_container


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the local storage tables."""
    click.echo('Initializing the database...')
    db.create_all()
    click.echo('Database initialized successfully!')


@click.command('pending')
@with_appcontext
def pending_command():
    """Show how many records are waiting to be uploaded."""
    counts = get_container().store.pending_count()
    for kind, count in counts.items():
        if kind != 'total':
            click.echo(f"{kind}: {count}")
    click.echo(f"Total pending: {counts['total']}")


@click.command('sync')
@click.option('--assume-online', is_flag=True, help='Skip the connectivity check')
@with_appcontext
def sync_command(assume_online):
    """Upload every pending record."""
    container = get_container()
    if assume_online:
        container.connectivity.set_online(True)

    report = container.sync_service.run_pass()
    for outcome in report.results:
        mark = 'ok' if outcome.result.success else 'FAILED'
        click.echo(f"- {outcome.kind.value} {outcome.record_id}: {mark} {outcome.result.message}")
    click.echo(report.summary())
    if not report.success:
        raise SystemExit(1)


@click.command('set-script-url')
@click.argument('url')
@with_appcontext
def set_script_url_command(url):
    """Store the Apps Script web app URL."""
    store = get_container().store
    result = store.save_script_url(url)
    if store.config.is_placeholder(url):
        click.echo("Warning: this URL looks like a placeholder; syncing will use the default.")
    click.echo(f"Script URL saved{' (memory only)' if result.fallback else ''}.")


@click.command('reset-storage')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@with_appcontext
def reset_storage_command(yes):
    """Delete all local records, including ones that were never uploaded."""
    store = get_container().store
    pending = store.pending_count()['total']
    if not yes:
        click.confirm(f"This deletes {pending} unsynced records. Continue?", abort=True)
    store.reset()
    click.echo("Local data reset.")


def register_commands(app):
    """Register CLI commands with the Flask application."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(pending_command)
    app.cli.add_command(sync_command)
    app.cli.add_command(set_script_url_command)
    app.cli.add_command(reset_storage_command)
