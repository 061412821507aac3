import json

import click
from flask.cli import AppGroup

from ..rate_table.interface import RateTableInterface
from .services.verifier import VerifierService

ledger_cli = AppGroup('ledger', help='Inspect the XP / SKP ledger.')


@ledger_cli.command('verify')
@click.option('--user-id', type=int, default=None, help='Check a single user instead of everyone.')
def verify_command(user_id):
    """Print the integrity report."""
    if user_id is not None:
        data = VerifierService.verify_user(user_id).to_dict()
    else:
        data = VerifierService.verify_all().to_dict()
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@ledger_cli.command('rates')
def rates_command():
    """Print the active rate table."""
    click.echo(json.dumps(RateTableInterface.get_rate_table().to_dict(), indent=2, ensure_ascii=False))
