from werkzeug.security import check_password_hash

from eduresources import password


def answer_prompts(monkeypatch, *answers):
    answers = iter(answers)
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))


def test_create_hash(monkeypatch, capsys):
    answer_prompts(monkeypatch, "s3cret!", "s3cret!")

    hashed = password.create_hash()

    assert check_password_hash(hashed, "s3cret!")
    out = capsys.readouterr().out
    assert hashed in out
    assert "INSERT" not in out


def test_create_hash_mismatch(monkeypatch, capsys):
    answer_prompts(monkeypatch, "one", "two")

    assert password.create_hash() is None
    assert "Passwords do not match" in capsys.readouterr().out


def test_create_hash_empty(monkeypatch, capsys):
    answer_prompts(monkeypatch, "", "")

    assert password.create_hash() is None
    assert "cannot be empty" in capsys.readouterr().out


def test_main_prints_admin_insert(monkeypatch, capsys):
    answer_prompts(monkeypatch, "pa55word", "pa55word")

    assert password.main([" Root@Example.com", "O'Neil"]) == 0

    out = capsys.readouterr().out
    assert "INSERT INTO admins (email, full_name, password_hash) VALUES ('root@example.com', 'O''Neil', '" in out
    hashed = out.rsplit("'", 2)[-2]
    assert check_password_hash(hashed, "pa55word")


def test_main_exit_status_on_mismatch(monkeypatch):
    answer_prompts(monkeypatch, "a", "b")
    assert password.main([]) == 1


def test_admin_insert_sql_escapes_quotes():
    sql = password.admin_insert_sql("a@b.c", None, "hash'x")
    assert sql == "INSERT INTO admins (email, full_name, password_hash) VALUES ('a@b.c', '', 'hash''x');"


def test_main_rejects_extra_arguments(capsys):
    assert password.main(["a@b.c", "Name", "extra"]) == 2
    assert "Usage:" in capsys.readouterr().out
