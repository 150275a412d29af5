import pytest

from agora.prerelease import is_prerelease, main


def stdout(capsys, reference):
    assert main(["--reference", reference]) == 0
    return capsys.readouterr().out


def test_junk_is_prerelease(capsys):
    assert stdout(capsys, "refs/tags/asdf") == "::set-output name=value::true\n"


def test_valid_version_is_not_prerelease(capsys):
    assert stdout(capsys, "refs/tags/0.0.0") == "::set-output name=value::false\n"


def test_valid_version_with_trailing_characters_is_prerelease(capsys):
    assert stdout(capsys, "refs/tags/0.0.0-rc1") == "::set-output name=value::true\n"


def test_valid_version_with_lots_of_digits_is_not_prerelease(capsys):
    assert (
        stdout(capsys, "refs/tags/01232132.098327498374.43268473849734")
        == "::set-output name=value::false\n"
    )


def test_trailing_newline_is_prerelease():
    assert is_prerelease("refs/tags/1.2.3\n") is True


def test_missing_reference_is_an_error():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2