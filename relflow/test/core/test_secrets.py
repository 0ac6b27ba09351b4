from relflow.core.result import Err, Ok
from relflow.core.secrets import find_references, interpolate, is_reference, redact


def test_find_references_both_styles_without_duplicates() -> None:
    text = "${env.NEXUS_USER}:${NEXUS_PASSWORD}@${env.NEXUS_USER}"
    assert find_references(text) == ["NEXUS_USER", "NEXUS_PASSWORD"]


def test_is_reference() -> None:
    assert is_reference("${env.NEXUS_PASSWORD}")
    assert is_reference(" ${TOKEN} ")
    assert not is_reference("hunter2")
    assert not is_reference("prefix-${TOKEN}")


def test_interpolate_resolves() -> None:
    result = interpolate("user=${env.U} pass=${P}", {"U": "ci", "P": "s3cret"})
    assert result == Ok("user=ci pass=s3cret")


def test_interpolate_lists_every_missing_name() -> None:
    result = interpolate("${env.A} ${B} ${C}", {"B": "x"})
    assert isinstance(result, Err)
    assert result.error.missing == ("A", "C")
    assert "A, C" in result.error.message


def test_redact_masks_longest_first() -> None:
    text = "token abc123 and abc"
    assert redact(text, {"T": "abc123", "S": "abc"}) == "token *** and ***"


def test_redact_ignores_empty_values() -> None:
    assert redact("plain", {"EMPTY": ""}) == "plain"
