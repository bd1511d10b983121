import pytest

from totp_core import BASE32_ALPHABET, otp_cli


def test_secret_command(capsys):
    assert otp_cli.main(["secret"]) == otp_cli.EXIT_OK
    secret = capsys.readouterr().out.strip()
    assert len(secret) == 32
    assert set(secret) <= set(BASE32_ALPHABET)


def test_secret_command_length(capsys):
    otp_cli.main(["secret", "--length", "16"])
    assert len(capsys.readouterr().out.strip()) == 16


def test_code_command(capsys, rfc_secret):
    assert otp_cli.main(["code", "--secret", rfc_secret, "--timestamp", "59"]) == otp_cli.EXIT_OK
    out = capsys.readouterr().out
    assert out.startswith("287082")
    assert "1s" in out


def test_code_command_reads_secret_from_env(capsys, monkeypatch, rfc_secret):
    monkeypatch.setenv(otp_cli.SECRET_ENV, rfc_secret)
    otp_cli.main(["code", "--timestamp", "1234567890"])
    assert capsys.readouterr().out.startswith("005924")


def test_missing_secret_is_an_error(capsys, monkeypatch):
    monkeypatch.delenv(otp_cli.SECRET_ENV, raising=False)
    assert otp_cli.main(["code"]) == otp_cli.EXIT_ERROR
    assert otp_cli.SECRET_ENV in capsys.readouterr().err


def test_invalid_secret_is_an_error(capsys):
    assert otp_cli.main(["code", "--secret", "0000", "--timestamp", "59"]) == otp_cli.EXIT_ERROR
    assert "Invalid base32 character" in capsys.readouterr().err


@pytest.mark.parametrize(
    "code,expected",
    [("050471", otp_cli.EXIT_OK), ("000000", otp_cli.EXIT_INVALID)],
)
def test_verify_command(capsys, rfc_secret, code, expected):
    argv = ["verify", "--secret", rfc_secret, "--code", code, "--timestamp", "1111111111", "--window", "0"]
    assert otp_cli.main(argv) == expected


def test_verify_command_unavailable(capsys):
    argv = ["verify", "--secret", "0000", "--code", "123456", "--timestamp", "1111111111"]
    assert otp_cli.main(argv) == otp_cli.EXIT_ERROR
    assert "could not be checked" in capsys.readouterr().out


def test_uri_command(capsys):
    argv = ["uri", "--secret", "JBSWY3DPEHPK3PXP", "--account", "alice@example.com", "--issuer", "Dash"]
    assert otp_cli.main(argv) == otp_cli.EXIT_OK
    assert capsys.readouterr().out.strip() == (
        "otpauth://totp/Dash:alice%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=Dash"
    )


def test_no_command_prints_hint(capsys):
    assert otp_cli.main([]) == otp_cli.EXIT_OK
    assert "-h" in capsys.readouterr().out
