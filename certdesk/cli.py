# certdesk/cli.py
import json
import logging
import os

import click

from certdesk.core.errors import CertdeskError
from certdesk.core.logging import setup_logging
from certdesk.models.admin_role import ROLE_ADMIN, ROLE_NAMES
from certdesk.services.certificates import certificate_filename, render_certificate_pdf
from certdesk.services.numbering import make_certificate_number
from certdesk.services.records import normalize_certificate_input

log = logging.getLogger(__name__)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Ferramentas de linha de comando do certdesk."""
    setup_logging(log_level.upper() if log_level else None)


@cli.command("render")
@click.option("--name", required=True)
@click.option("--number", "certificate_no", required=True)
@click.option("--out", "out_path", required=True, type=click.Path(dir_okay=False))
@click.option("--template", default=None, type=click.Path(exists=True, dir_okay=False))
def render(name: str, certificate_no: str, out_path: str, template):
    """Render one certificate PDF."""
    try:
        pdf = render_certificate_pdf(name=name, certificate_no=certificate_no, template=template)
    except CertdeskError as exc:
        raise click.ClickException(exc.message)
    with open(out_path, "wb") as f:
        f.write(pdf)
    click.echo(out_path)


@cli.command("generate-all")
@click.option("--students", "students_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "out_dir", default="certificates", show_default=True, type=click.Path(file_okay=False))
@click.option("--start", default=1, show_default=True, type=int, help="First sequence for students without a number")
@click.option("--template", default=None, type=click.Path(exists=True, dir_okay=False))
def generate_all(students_path: str, out_dir: str, start: int, template):
    """Render a certificate for every student in a JSON list."""
    with open(students_path, encoding="utf-8") as f:
        students = json.load(f)
    if not isinstance(students, list):
        raise click.ClickException("Students file must contain a JSON list.")

    os.makedirs(out_dir, exist_ok=True)
    sequence = start
    ok, failed = 0, []
    for i, student in enumerate(students, start=1):
        name = f"{(student or {}).get('name') or ''}".strip()
        number = normalize_certificate_input((student or {}).get("certificate_no"))
        if not number:
            number = make_certificate_number(sequence)
            sequence += 1
        try:
            pdf = render_certificate_pdf(name=name, certificate_no=number, template=template)
        except CertdeskError as exc:
            log.error("student %d (%s) failed: %s", i, name or "<no name>", exc.message)
            failed.append((i, name, exc.message))
            continue
        path = os.path.join(out_dir, certificate_filename(number))
        with open(path, "wb") as f:
            f.write(pdf)
        ok += 1
        click.echo(f"[{i}/{len(students)}] {number} -> {path}")

    click.echo(f"Generated {ok} of {len(students)} certificates in {out_dir}")
    for i, name, reason in failed:
        click.echo(f"  failed #{i} {name or '<no name>'}: {reason}", err=True)
    if failed:
        raise SystemExit(1)


@cli.command("create-user")
@click.option("--email", required=True)
@click.option("--password", required=True, prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--name", default=None)
@click.option("--role", default=ROLE_ADMIN, show_default=True, type=click.Choice(ROLE_NAMES))
def create_user(email: str, password: str, name, role: str):
    """Create an admin account (or change its role)."""
    from certdesk.core.security import password_policy_ok
    from certdesk.db.init_db import ensure_user
    from certdesk.db.session import SessionLocal

    if not password_policy_ok(password):
        raise click.ClickException("Password must be between 8 and 128 characters.")
    with SessionLocal() as db:
        user = ensure_user(db, email=email, password=password, role=role, name=name)
        click.echo(f"{user.email} ({role})")


@cli.command("migrate")
def migrate():
    """Apply migrations and seed the super admin."""
    from certdesk.db.bootstrap import run_migrations_and_seed

    run_migrations_and_seed()
    click.echo("ok")


if __name__ == "__main__":
    cli()
