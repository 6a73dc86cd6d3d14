import threading
from decimal import Decimal

from django.db import connections
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from rest_framework.exceptions import ValidationError

from core.exceptions import BracketNotFound, BracketOverlapError, DuplicateBracketName
from payroll.models import Bracket, BracketKindLock
from payroll.services import BracketService
from payroll.stores import BracketStore

SERVICE = Bracket.KIND_SERVICE_YEARS
ABSENCE = Bracket.KIND_ABSENCE_DAYS


class BracketServiceTests(TestCase):
    def setUp(self):
        self.service = BracketService()
        self.junior = self.service.create(SERVICE, name="Junior", min_bound=0, max_bound=5, percentage="2")

    def test_create_rejects_overlapping_range(self):
        with self.assertRaises(BracketOverlapError):
            self.service.create(SERVICE, name="Mid", min_bound=5, max_bound=None, percentage="4")
        self.assertEqual(Bracket.objects.filter(kind=SERVICE).count(), 1)

    def test_create_accepts_adjacent_unbounded_range(self):
        bracket = self.service.create(SERVICE, name="Senior", min_bound=6, percentage="4")
        self.assertIsNone(bracket.max_bound)
        self.assertEqual(self.service.match(SERVICE, 40), bracket)

    def test_kinds_are_independent(self):
        bracket = self.service.create(ABSENCE, name="Junior", min_bound=0, max_bound=5, percentage="-1")
        self.assertEqual(bracket.kind, ABSENCE)

    def test_create_validates_bounds_and_percentages(self):
        cases = [
            dict(kind=SERVICE, min_bound=10, max_bound=9, percentage="1"),
            dict(kind=SERVICE, min_bound=-1, max_bound=3, percentage="1"),
            dict(kind=SERVICE, min_bound=10, max_bound=12, percentage="0"),
            dict(kind=SERVICE, min_bound=10, max_bound=12, percentage="100.01"),
            dict(kind=ABSENCE, min_bound=10, max_bound=12, percentage="-100.01"),
            dict(kind="BONUS", min_bound=10, max_bound=12, percentage="1"),
        ]
        for case in cases:
            with self.subTest(**case):
                kind = case.pop("kind")
                with self.assertRaises(ValidationError):
                    self.service.create(kind, name="Invalid", **case)

    def test_negative_absence_percentage_allowed(self):
        bracket = self.service.create(ABSENCE, name="Heavy", min_bound=6, percentage="-100")
        self.assertEqual(bracket.percentage, Decimal("-100"))

    def test_duplicate_active_name_rejected(self):
        with self.assertRaises(DuplicateBracketName):
            self.service.create(SERVICE, name="junior", min_bound=6, max_bound=10, percentage="3")

    def test_update_excludes_the_bracket_being_edited(self):
        bracket = self.service.update(SERVICE, self.junior.pk, max_bound=7, percentage="2.5")
        bracket.refresh_from_db()
        self.assertEqual(bracket.max_bound, 7)
        self.assertEqual(bracket.percentage, Decimal("2.50"))

    def test_update_rejects_overlap_with_other_bracket(self):
        senior = self.service.create(SERVICE, name="Senior", min_bound=6, max_bound=10, percentage="4")
        with self.assertRaises(BracketOverlapError):
            self.service.update(SERVICE, senior.pk, min_bound=5)

    def test_update_rejects_unknown_fields(self):
        with self.assertRaises(ValidationError):
            self.service.update(SERVICE, self.junior.pk, kind=ABSENCE)

    def test_deactivated_brackets_free_their_range(self):
        self.service.deactivate(SERVICE, self.junior.pk)

        self.assertIsNone(self.service.match(SERVICE, 2))
        replacement = self.service.create(SERVICE, name="Junior", min_bound=0, max_bound=3, percentage="1.5")
        self.assertTrue(replacement.is_active)
        self.assertTrue(Bracket.objects.filter(pk=self.junior.pk, is_active=False).exists())

    def test_reactivating_requires_free_range(self):
        self.service.deactivate(SERVICE, self.junior.pk)
        self.service.create(SERVICE, name="Starter", min_bound=0, max_bound=2, percentage="1")
        with self.assertRaises(BracketOverlapError):
            self.service.update(SERVICE, self.junior.pk, is_active=True)

    def test_validate_no_overlap(self):
        self.assertFalse(self.service.validate_no_overlap(SERVICE, 3, None))
        self.assertTrue(self.service.validate_no_overlap(SERVICE, 6, None))
        self.assertTrue(self.service.validate_no_overlap(SERVICE, 0, 10, exclude_id=self.junior.pk))

    def test_get_unknown_bracket(self):
        with self.assertRaises(BracketNotFound):
            self.service.get(ABSENCE, self.junior.pk)


class RecordingBracketStore(BracketStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = []

    def lock_kind(self, kind):
        self.calls.append(("lock_kind", kind))
        return super().lock_kind(kind)

    def list_active(self, kind):
        self.calls.append(("list_active", kind))
        return super().list_active(kind)


class BracketKindLockTests(TestCase):
    def test_writes_lock_the_kind_before_reading_active_brackets(self):
        store = RecordingBracketStore()
        service = BracketService(store=store)

        bracket = service.create(ABSENCE, name="Light", min_bound=0, max_bound=2, percentage="-1")
        self.assertEqual(store.calls, [("lock_kind", ABSENCE), ("list_active", ABSENCE)])

        store.calls.clear()
        service.update(ABSENCE, bracket.pk, max_bound=3)
        self.assertEqual(store.calls, [("lock_kind", ABSENCE), ("list_active", ABSENCE)])

        store.calls.clear()
        service.deactivate(ABSENCE, bracket.pk)
        self.assertEqual(store.calls, [("lock_kind", ABSENCE)])

    def test_lock_row_created_on_first_write(self):
        BracketKindLock.objects.all().delete()

        BracketService().create(SERVICE, name="Junior", min_bound=0, max_bound=5, percentage="2")

        self.assertEqual(list(BracketKindLock.objects.values_list("kind", flat=True)), [SERVICE])


@skipUnlessDBFeature("has_select_for_update")
class ConcurrentBracketCreateTests(TransactionTestCase):
    def test_racing_creates_on_empty_kind_keep_one_range(self):
        barrier = threading.Barrier(2)
        errors = []

        def create(name, min_bound, max_bound):
            try:
                barrier.wait()
                BracketService().create(SERVICE, name=name, min_bound=min_bound, max_bound=max_bound, percentage="2")
            except BracketOverlapError as exc:
                errors.append(exc)
            finally:
                connections.close_all()

        threads = [
            threading.Thread(target=create, args=("Junior", 0, 5)),
            threading.Thread(target=create, args=("Senior", 5, None)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(Bracket.objects.filter(kind=SERVICE, is_active=True).count(), 1)
        self.assertEqual(len(errors), 1)
