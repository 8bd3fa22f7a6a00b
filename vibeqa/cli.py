import click
from flask.cli import with_appcontext
from vibeqa.extensions import db
from vibeqa.models import Org, Project, generate_api_key


def _get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if not project:
        raise click.ClickException(f"Project id {project_id} not found")
    return project


def _split_domains(domains: tuple[str, ...]) -> list[str]:
    out = []
    for raw in domains:
        for d in raw.split(","):
            d = d.strip().lower()
            if d and d not in out:
                out.append(d)
    return out


@click.group()
def orgs():
    """Organization ops."""


@orgs.command("create")
@click.option("--name", required=True)
@click.option("--notify-email", default=None, help="Where new-feedback emails go")
@click.option("--feedback-limit", type=int, default=None, help="Monthly feedback cap (omit = unlimited)")
@click.option("--storage-limit-mb", type=int, default=None, help="Media storage cap in MB (omit = unlimited)")
@with_appcontext
def orgs_create(name, notify_email, feedback_limit, storage_limit_mb):
    org = Org(
        name=name,
        is_active=True,
        notify_email=notify_email,
        feedback_limit_monthly=feedback_limit,
        storage_limit_bytes=storage_limit_mb * 1024 * 1024 if storage_limit_mb is not None else None,
    )
    db.session.add(org)
    db.session.commit()
    click.echo(f"Org created id={org.id} name={org.name}")


@click.group()
def projects():
    """Widget project ops (keys, domains, activation)."""


@projects.command("create")
@click.option("--org-id", type=int, required=True, help="Existing org id")
@click.option("--name", required=True)
@click.option("--domain", "domains", multiple=True, help="Allowed origin; repeat or comma-separate. Omit = open")
@with_appcontext
def projects_create(org_id, name, domains):
    org = db.session.get(Org, org_id)
    if not org:
        raise click.ClickException(f"Org id {org_id} not found")

    project = Project(org_id=org.id, name=name, allowed_domains=_split_domains(domains), is_active=True)
    db.session.add(project)
    db.session.commit()

    click.echo(f"Project created id={project.id} org_id={org.id} name={project.name}")
    click.echo(f"api_key={project.api_key}")


@projects.command("rotate-key")
@click.option("--project-id", type=int, required=True)
@with_appcontext
def projects_rotate_key(project_id):
    project = _get_project(project_id)
    project.api_key = generate_api_key()
    db.session.commit()
    click.echo(f"api_key={project.api_key}")


@projects.command("set-domains")
@click.option("--project-id", type=int, required=True)
@click.option("--domain", "domains", multiple=True, help="Replaces the whole list; none = open project")
@with_appcontext
def projects_set_domains(project_id, domains):
    project = _get_project(project_id)
    project.allowed_domains = _split_domains(domains)
    db.session.commit()
    shown = ", ".join(project.allowed_domains) or "(open)"
    click.echo(f"Project {project.id} allowed domains: {shown}")


@projects.command("deactivate")
@click.option("--project-id", type=int, required=True)
@with_appcontext
def projects_deactivate(project_id):
    project = _get_project(project_id)
    project.is_active = False
    db.session.commit()
    click.echo(f"Project {project.id} deactivated")


def register_cli(app):
    app.cli.add_command(orgs)
    app.cli.add_command(projects)
