import logging
from datetime import datetime

import click

from models import db, User


def register_commands(app):
    """Register Flask CLI commands"""

    @app.cli.command('create-admin')
    @click.option('--email', required=True, help='Admin email address')
    @click.option('--name', required=True, help='Display name')
    @click.password_option(help='Admin password')
    def create_admin(email, name, password):
        """Create an approved admin account, or promote an existing user"""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()

        if user is None:
            user = User(email=email, name=name)
            db.session.add(user)

        user.set_password(password)
        user.role = 'admin'
        user.status = 'approved'
        user.approved_at = datetime.utcnow()
        db.session.commit()

        logging.info(f"Admin account ready: {email}")
        click.echo(f"Admin account ready: {email}")
