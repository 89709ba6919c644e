"""
Flask CLI commands for platform management.

Commands:
- flask create-admin: Create a new platform admin user
- flask init-db: Create the database tables
"""

import click
from app.database import create_all, get_session
from app.models import AppUser, UserRole
from app.services.auth_service import is_valid_email


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    def create_admin(email, password):
        """Create a new admin user for the backoffice panel."""
        db_session = get_session()
        email = email.strip().lower()

        # Validate email format
        if not is_valid_email(email):
            click.echo(click.style('❌ Email inválido. Use o formato: user@example.com', fg='red'))
            return

        # Validate password length
        if len(password) < 6:
            click.echo(click.style('❌ A senha deve ter pelo menos 6 caracteres.', fg='red'))
            return

        # Check if user already exists
        if db_session.query(AppUser).filter_by(email=email).first():
            click.echo(click.style(f'❌ Já existe um usuário com o email: {email}', fg='red'))
            return

        try:
            admin = AppUser(email=email, full_name='Administrador', role=UserRole.ADMIN.value, active=True)
            admin.set_password(password)

            db_session.add(admin)
            db_session.commit()

            click.echo(click.style('\n✅ Administrador criado com sucesso!', fg='green', bold=True))
            click.echo(f'   Email: {email}')
            click.echo(f'   ID: {admin.id}')
            click.echo('\n💡 Acesse o painel admin em: /admin/dashboard')

        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Erro ao criar administrador: {str(e)}', fg='red'))

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables (development databases)."""
        create_all()
        click.echo(click.style('✅ Tabelas criadas.', fg='green'))
