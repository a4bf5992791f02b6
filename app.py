from flask import Flask
from config import Config
from routes import health_bp, security_bp, article_views_bp

from models import db
from flask_migrate import Migrate
from utils.logging import init_logging


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    init_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_DIR"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(security_bp)
    app.register_blueprint(article_views_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from security.ip_security import block_ip, unblock_ip, list_blocked_ips

def register_cli(app):
    @app.cli.command("block-ip")
    @click.argument("ip_address")
    @click.option("--reason", default="Blocked by administrator", show_default=True)
    def block_ip_command(ip_address, reason):
        """Block an IP address."""
        if not block_ip(ip_address.strip(), reason):
            raise click.ClickException(f"Could not block {ip_address}")
        click.echo(f"{ip_address} blocked: {reason}")

    @app.cli.command("unblock-ip")
    @click.argument("ip_address")
    def unblock_ip_command(ip_address):
        """Lift the block on an IP address."""
        if not unblock_ip(ip_address.strip()):
            click.echo(f"{ip_address} is not blocked")
            return
        click.echo(f"{ip_address} unblocked")

    @app.cli.command("blocked-ips")
    @click.option("--limit", default=200, show_default=True, type=int)
    def blocked_ips_command(limit):
        """List blocked IP addresses, newest first."""
        rows = list_blocked_ips(limit)
        if not rows:
            click.echo("No blocked IPs")
            return
        for r in rows:
            blocked_at = r.blocked_at.isoformat() if r.blocked_at else "-"
            click.echo(f"{r.ip_address}\t{blocked_at}\t{r.block_reason or ''}")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
