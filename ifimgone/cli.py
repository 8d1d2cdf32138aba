import click
from flask.cli import with_appcontext

from ifimgone.services import get_delivery_dispatcher, get_trigger_evaluator


def _echo_summary(summary):
    click.echo(f"Processed: {summary['processed']}")
    for outcome, count in sorted(summary['outcomes'].items()):
        click.echo(f"   {outcome}: {count}")
    if summary['errors']:
        click.echo(f"Errors: {len(summary['errors'])}")
        for error in summary['errors']:
            click.echo(f"   {error['item']}: {error['error']}")


@click.command('sweep-inactivity')
@with_appcontext
def sweep_inactivity():
    """Run the inactivity sweep once"""
    click.echo("Running inactivity sweep...")
    _echo_summary(get_trigger_evaluator().run_inactivity_sweep())


@click.command('sweep-dates')
@with_appcontext
def sweep_dates():
    """Deliver date-triggered messages that are due"""
    click.echo("Running date sweep...")
    _echo_summary(get_trigger_evaluator().run_date_sweep())


@click.command('deliver-message')
@click.argument('message_id', type=int)
@click.option('--reason', default=None, help='Delivery reason shown to recipients')
@with_appcontext
def deliver_message(message_id, reason):
    """Deliver one draft message now"""
    result = get_delivery_dispatcher().deliver(message_id, reason=reason)

    if result.skipped:
        click.echo(f"Message {message_id} skipped: {result.skip_reason}")
        return

    click.echo(f"Delivered to {result.delivered_count} recipient(s)")
    for email in result.failed_recipients:
        click.echo(f"   failed: {email}")


def init_app(app):
    """Register CLI commands with Flask app"""
    app.cli.add_command(sweep_inactivity)
    app.cli.add_command(sweep_dates)
    app.cli.add_command(deliver_message)
