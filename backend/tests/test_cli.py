import pytest

from sportlens import cli
from sportlens.config import reset_settings


@pytest.fixture()
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("PROCESSING_SECONDS", "0")
    monkeypatch.setenv("BATCH_PROCESSING_SECONDS", "0")
    reset_settings()
    yield tmp_path
    reset_settings()


def write_image(directory, name, data):
    path = directory / name
    path.write_bytes(data)
    return str(path)


def test_cli_uploads_edits_and_processes(cli_env, png_bytes, capsys):
    images = [write_image(cli_env, name, png_bytes) for name in ("a.png", "b.png")]

    with pytest.raises(SystemExit) as excinfo:
        cli.main(images + ["--style", "DRAMATIC", "--sharpness", "55", "--process-all"])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "2 completed, 0 failed, 0 skipped" in out
    assert out.count("COMPLETED") == 2
    assert "DRAMATIC" in out


def test_cli_rejects_out_of_range_sharpness(cli_env, png_bytes):
    image = write_image(cli_env, "a.png", png_bytes)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([image, "--sharpness", "500"])

    assert excinfo.value.code == 2


def test_cli_without_readable_images(cli_env):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(cli_env / "missing.jpg")])

    assert excinfo.value.code == 1
