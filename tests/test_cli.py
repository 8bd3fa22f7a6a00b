from vibeqa.extensions import db
from vibeqa.models import Org, Project


def test_orgs_and_projects_create(app):
    runner = app.test_cli_runner()
    res = runner.invoke(args=["orgs", "create", "--name", "Acme", "--notify-email", "ops@acme.test", "--storage-limit-mb", "5"])
    assert res.exit_code == 0, res.output
    assert "Org created" in res.output

    with app.app_context():
        org = db.session.query(Org).one()
        assert org.storage_limit_bytes == 5 * 1024 * 1024
        assert org.feedback_limit_monthly is None
        org_id = org.id

    res = runner.invoke(args=[
        "projects", "create", "--org-id", str(org_id), "--name", "Web",
        "--domain", "App.Acme.test, *.acme.test", "--domain", "localhost:3000",
    ])
    assert res.exit_code == 0, res.output
    key_line = [line for line in res.output.splitlines() if line.startswith("api_key=")][0]

    with app.app_context():
        project = db.session.query(Project).one()
        assert key_line == f"api_key={project.api_key}"
        assert project.api_key.startswith("vqa_")
        assert project.allowed_domains == ["app.acme.test", "*.acme.test", "localhost:3000"]


def test_projects_create_unknown_org_fails(app):
    res = app.test_cli_runner().invoke(args=["projects", "create", "--org-id", "999", "--name", "Web"])
    assert res.exit_code != 0
    assert "Org id 999 not found" in res.output


def test_rotate_key_and_deactivate(app, make_project):
    p = make_project(domains=["app.example.com"])
    runner = app.test_cli_runner()

    res = runner.invoke(args=["projects", "rotate-key", "--project-id", str(p.id)])
    assert res.exit_code == 0, res.output
    with app.app_context():
        project = db.session.get(Project, p.id)
        assert project.api_key != p.api_key
        assert f"api_key={project.api_key}" in res.output

    res = runner.invoke(args=["projects", "set-domains", "--project-id", str(p.id)])
    assert res.exit_code == 0
    assert "(open)" in res.output

    res = runner.invoke(args=["projects", "deactivate", "--project-id", str(p.id)])
    assert res.exit_code == 0
    with app.app_context():
        project = db.session.get(Project, p.id)
        assert project.is_active is False
        assert project.allowed_domains == []
