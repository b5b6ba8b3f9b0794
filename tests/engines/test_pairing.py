"""
Tests for paired-class ("vs") splitting.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from payroll_kernel.exceptions import InvalidInstructorNameError
from payroll_engines.pairing import ceil_share, split_paired_class


class TestSplitPairedClass:

    def test_pair_splits_evenly(self):
        shares = split_paired_class(
            "ana vs maria", reservations=18, capacity=20, paid_reservations=15
        )

        assert [s.instructor_name for s in shares] == ["Ana", "Maria"]
        assert [(s.reservations, s.capacity) for s in shares] == [(9, 10), (9, 10)]
        assert [s.paid_reservations for s in shares] == [8, 8]
        assert [s.id_suffix for s in shares] == ["a", "b"]
        assert all(s.versus_count == 2 and s.is_versus for s in shares)

    def test_single_instructor_untouched(self):
        (share,) = split_paired_class(
            "juan perez", reservations=18, capacity=20, paid_reservations=15
        )

        assert share.instructor_name == "Juan Perez"
        assert (share.reservations, share.capacity, share.paid_reservations) == (18, 20, 15)
        assert share.versus_count == 1
        assert share.id_suffix == ""
        assert not share.is_versus

    def test_odd_counts_round_up(self):
        shares = split_paired_class("a vs b vs c", reservations=10, capacity=20, paid_reservations=0)

        assert [s.reservations for s in shares] == [4, 4, 4]
        assert [s.capacity for s in shares] == [7, 7, 7]
        assert [s.id_suffix for s in shares] == ["a", "b", "c"]

    def test_keep_flags_drop_names_but_not_divisor(self):
        shares = split_paired_class(
            "ana vs maria",
            reservations=18,
            capacity=20,
            paid_reservations=0,
            keep=[False, True],
        )

        assert len(shares) == 1
        assert shares[0].instructor_name == "Maria"
        assert shares[0].reservations == 9
        assert shares[0].id_suffix == "b"

    def test_missing_keep_flags_default_to_true(self):
        shares = split_paired_class(
            "a vs b vs c", reservations=9, capacity=9, paid_reservations=0, keep=[True]
        )

        assert len(shares) == 3

    def test_single_instructor_not_kept(self):
        assert split_paired_class("ana", 1, 1, 1, keep=[False]) == ()

    def test_more_than_four_rejected(self):
        with pytest.raises(InvalidInstructorNameError):
            split_paired_class("a vs b vs c vs d vs e", 10, 10, 10)

    def test_empty_rejected(self):
        with pytest.raises(InvalidInstructorNameError):
            split_paired_class("   ", 10, 10, 10)

    def test_custom_token(self):
        shares = split_paired_class("ana / maria", 4, 4, 4, tokens=("/",))

        assert [s.instructor_name for s in shares] == ["Ana", "Maria"]


class TestShareConservation:

    @given(
        total=st.integers(min_value=0, max_value=1000),
        parts=st.integers(min_value=1, max_value=4),
    )
    def test_shares_cover_total_with_less_than_one_per_part_extra(self, total, parts):
        share = ceil_share(total, parts)

        assert total <= share * parts < total + parts

    @given(
        reservations=st.integers(min_value=0, max_value=200),
        capacity=st.integers(min_value=0, max_value=200),
        names=st.integers(min_value=2, max_value=4),
    )
    def test_split_never_loses_reservations(self, reservations, capacity, names):
        raw = " vs ".join(f"instructor{i}" for i in range(names))

        shares = split_paired_class(raw, reservations, capacity, 0)

        assert len(shares) == names
        assert sum(s.reservations for s in shares) >= reservations
        assert sum(s.capacity for s in shares) >= capacity
        assert len({s.reservations for s in shares}) == 1
