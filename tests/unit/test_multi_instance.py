from src.domain.entities.history_entry import StagingEntry
from src.domain.services.multi_instance import instance_mapping, normalize_instances


def _staging(*rows):
    return [
        StagingEntry(row=row, source_seq=row - 1, operation=op, instance=instance)
        for row, (op, instance) in enumerate(rows, start=1)
    ]


def test_gap_left_by_partial_selection_is_closed(catalog):
    # second of three blur instances was not copied
    staging = _staging(("blur", 0), ("exposure", 0), ("blur", 2))

    out = normalize_instances(staging, catalog)

    assert [(s.operation, s.instance) for s in out] == [("blur", 0), ("exposure", 0), ("blur", 1)]
    assert [s.row for s in out] == [1, 2, 3]


def test_rows_of_the_same_instance_move_together(catalog):
    staging = _staging(("blur", 3), ("blur", 5), ("blur", 3))

    out = normalize_instances(staging, catalog)

    assert [s.instance for s in out] == [0, 1, 0]


def test_only_moved_instances_are_mapped(catalog):
    staging = _staging(("blur", 0), ("blur", 4), ("sharpen", 1))

    assert instance_mapping(staging, catalog) == {("blur", 4): 1, ("sharpen", 1): 0}


def test_single_instance_operations_are_left_alone(catalog):
    staging = _staging(("flip", 2), ("demosaic", 1))

    assert normalize_instances(staging, catalog) is staging


def test_normalizing_twice_changes_nothing(catalog):
    staging = _staging(("blur", 2), ("exposure", 7), ("blur", 9), ("flip", 0))

    once = normalize_instances(staging, catalog)
    twice = normalize_instances(once, catalog)

    assert twice is once
    assert instance_mapping(once, catalog) == {}
