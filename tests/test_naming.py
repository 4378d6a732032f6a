import pytest

from farmfence.errors import Conflict, IntegrityViolation, NameExhausted
from farmfence.naming import allocate_name, suffixed_name


def taken(*names):
    existing = set(names)
    return lambda name: name in existing


def test_free_name_returned_unchanged():
    assert allocate_name("North", taken("South"), default_prefix="farm", sequence_count=1) == "North"


@pytest.mark.parametrize("desired", [None, "", "   "])
def test_blank_name_gets_default_from_sequence(desired):
    assert allocate_name(desired, taken(), default_prefix="farm", sequence_count=0) == "farm1"
    assert allocate_name(desired, taken("farm1"), default_prefix="fence", sequence_count=4) == "fence5"


def test_taken_name_without_rename_raises_conflict_with_proposal():
    with pytest.raises(Conflict) as exc:
        allocate_name("farm1", taken("farm1", "farm2"), default_prefix="farm", sequence_count=2)
    assert exc.value.original_name == "farm1"
    assert exc.value.proposed_name == "farm101"
    assert exc.value.to_dict()["suggestedName"] == "farm101"


def test_taken_name_with_rename_returns_first_free_suffix():
    exists = taken("farm1", "farm101", "farm102")
    name = allocate_name("farm1", exists, default_prefix="farm", sequence_count=3, allow_rename=True)
    assert name == "farm103"


def test_default_name_collision_is_suffixed():
    # a farm called "farm2" already exists while only one farm is counted
    name = allocate_name("", taken("farm2"), default_prefix="farm", sequence_count=1, allow_rename=True)
    assert name == "farm201"


def test_suffix_exhaustion_is_reported():
    with pytest.raises(NameExhausted) as exc:
        suffixed_name("herd", lambda _: True)
    assert isinstance(exc.value, IntegrityViolation)
    assert exc.value.base_name == "herd"


def test_suffix_limit_counts_probes():
    probes = []

    def exists(name):
        probes.append(name)
        return True

    with pytest.raises(NameExhausted):
        suffixed_name("x", exists, limit=100)
    assert probes[0] == "x01"
    assert probes[-1] == "x99"
    assert len(probes) == 99
