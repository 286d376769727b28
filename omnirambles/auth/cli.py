import click
from flask import Flask

from omnirambles.common.deps import credential_store, session_authority, session_store
from omnirambles.common.utils import utcnow


def register_cli(app: Flask):
    @app.cli.command("purge-sessions")
    def purge_sessions():
        """Supprime les sessions expirées (sinon elles tombent à la lecture)."""
        removed = session_store().expire(utcnow())
        click.echo(f"{removed} expired session(s) removed")

    @app.cli.command("disable-user")
    @click.argument("email")
    def disable_user(email):
        """Désactive un compte et ferme toutes ses sessions ouvertes."""
        user = credential_store().set_active(email, False)
        # le snapshot de session ne voit pas is_active: on révoque
        revoked = session_authority().revoke_user(user.id)
        click.echo(f"{user.email} disabled, {revoked} session(s) revoked")

    @app.cli.command("enable-user")
    @click.argument("email")
    def enable_user(email):
        user = credential_store().set_active(email, True)
        click.echo(f"{user.email} enabled")
