from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from vaultview.config.logger import get_logger
from vaultview.config.settings import global_settings
from vaultview.engine.predicate_evaluator import default_evaluator, PredicateEvaluator
from vaultview.model.records_model import Record
from vaultview.model.views_model import Predicate

log = get_logger(__name__)


RecordTest = Callable[[Record], bool]


def predicate_test(predicate: Predicate, evaluator: PredicateEvaluator) -> RecordTest:
    """
    A test on whole records that runs a predicate on the record's value for the
    predicate's own field.
    """

    def test(record: Record) -> bool:
        return evaluator.evaluate(predicate.expression, record.get(predicate.field))

    return test


def and_all(*tests: RecordTest) -> RecordTest:
    def test(record: Record) -> bool:
        return all(t(record) for t in tests)

    return test


class FilterEngine:
    """
    Keeps the records that satisfy every predicate. Order of the input is always
    preserved, including when predicates run on a thread pool.
    """

    def __init__(
        self,
        evaluator: Optional[PredicateEvaluator] = None,
        max_workers: Optional[int] = None,
    ):
        self.evaluator = evaluator or default_evaluator()
        self.max_workers = (
            max_workers if max_workers is not None else global_settings().predicate_workers
        )

    def apply(self, records: Sequence[Record], predicates: Sequence[Predicate]) -> List[Record]:
        records = list(records)
        if not predicates:
            return records

        passes = and_all(*(predicate_test(p, self.evaluator) for p in predicates))

        if self.max_workers > 0 and len(records) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(passes, records))
        else:
            results = [passes(record) for record in records]

        matched = [record for record, ok in zip(records, results) if ok]
        log.info(
            "Filtered %s records by %s predicates: %s matched",
            len(records),
            len(predicates),
            len(matched),
        )
        return matched


def apply(records: Sequence[Record], predicates: Sequence[Predicate]) -> List[Record]:
    return FilterEngine().apply(records, predicates)


## Tests

CS_MAJOR = "if (value) {return value.includes('Computer Science')} else {return false}"


def _records() -> List[Record]:
    return [
        Record("A", {"major": "Computer Science", "size": 120}),
        Record("B", {"major": None, "size": 8}),
        Record("C", {"major": "Biology"}),
    ]


def test_no_predicates_pass_through():
    records = _records()
    result = apply(records, [])
    assert result == records
    assert result is not records


def test_cs_major_scenario():
    result = apply(_records(), [Predicate("major", CS_MAJOR)])
    assert [r.id for r in result] == ["A"]


def test_predicates_combine_with_and():
    predicates = [
        Predicate("size", "value != null && value > 5"),
        Predicate("major", "value !== 'Biology'"),
    ]
    assert [r.id for r in apply(_records(), predicates)] == ["A", "B"]


def test_all_missing_field():
    assert apply(_records(), [Predicate("missing", "value.length > 0")]) == []
    assert len(apply(_records(), [Predicate("missing", "value == null")])) == 3


def test_fault_does_not_affect_other_records():
    records = [Record("1", {"x": None}), Record("2", {"x": "abc"}), Record("3", {"x": "abd"})]
    result = apply(records, [Predicate("x", "return value.startsWith('ab')")])
    assert [r.id for r in result] == ["2", "3"]


def test_thread_pool_preserves_order():
    from vaultview.config.settings import update_global_settings

    records = [Record(str(i), {"n": i}) for i in range(200)]
    predicates = [Predicate("n", "value % 3 === 0")]
    expected = [str(i) for i in range(0, 200, 3)]

    assert [r.id for r in FilterEngine(max_workers=4).apply(records, predicates)] == expected

    with update_global_settings() as settings:
        previous = settings.predicate_workers
        settings.predicate_workers = 3
    try:
        engine = FilterEngine()
        assert engine.max_workers == 3
        assert [r.id for r in engine.apply(records, predicates)] == expected
    finally:
        with update_global_settings() as settings:
            settings.predicate_workers = previous
