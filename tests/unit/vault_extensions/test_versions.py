import pytest

from vault_extensions.extensions.versions import VersionTriple, is_newer_version, parse_version


@pytest.mark.parametrize(
    ("new", "current", "expected"),
    [
        ("2.0.0", "1.9.9", True),
        ("1.0.1", "1.0.0", True),
        ("1.1.0", "1.0.9", True),
        ("1.0.0", "1.0.0", False),
        ("1.0.0", "1.1.0", False),
        ("1.0", "1.0.0", False),
        ("1.0.0.9", "1.0.0", False),
        ("1.2", "1.1.9", True),
    ],
)
def test_is_newer_version(new: str, current: str, expected: bool) -> None:
    assert is_newer_version(new, current) is expected


def test_parse_version_defaults_missing_and_non_numeric_components() -> None:
    assert parse_version("3") == VersionTriple(3, 0, 0)
    assert parse_version("1.beta.2") == VersionTriple(1, 0, 2)
    assert parse_version("") == VersionTriple(0, 0, 0)


def test_prerelease_suffix_is_not_numeric() -> None:
    # "0-rc1" is not a number, so the patch component counts as 0
    assert parse_version("1.2.0-rc1") == VersionTriple(1, 2, 0)
    assert not is_newer_version("1.2.0-rc1", "1.2.0")
