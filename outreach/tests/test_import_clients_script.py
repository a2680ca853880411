from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from outreach.app import models
from outreach.app.database import Base, build_engine
from outreach.app.scripts.import_clients import main


def _seed(url: str) -> tuple[str, str]:
    engine = build_engine(url)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        user = models.User(username="cli@example.com", role=models.UserRole.ADMIN)
        session.add(user)
        session.flush()
        group = models.ClientGroup(user_id=user.id, name="CLI")
        session.add(group)
        session.commit()
        return user.id, group.id
    finally:
        session.close()
        engine.dispose()


def test_cli_imports_file_and_prints_statistics(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    user_id, group_id = _seed(url)
    source = tmp_path / "contacts.csv"
    source.write_text(
        "Name,Phone,Region\nSmith John,+79161234567,\nDoe Jane,12345,\n", encoding="utf-8"
    )

    exit_code = main(
        [str(source), "--group-id", group_id, "--user-id", user_id, "--database-url", url]
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Total: 2 | Created: 1" in output
    assert "Skipped: 1" in output

    engine = build_engine(url)
    try:
        with engine.connect() as connection:
            count = connection.exec_driver_sql("SELECT COUNT(*) FROM clients").scalar()
    finally:
        engine.dispose()
    assert count == 1


def test_cli_reports_unknown_group(tmp_path):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    user_id, _ = _seed(url)
    source = tmp_path / "contacts.csv"
    source.write_text("Name,Phone,Region\nSmith,+79161234567,\n", encoding="utf-8")

    exit_code = main(
        [str(source), "--group-id", "missing", "--user-id", user_id, "--database-url", url]
    )

    assert exit_code == 1
