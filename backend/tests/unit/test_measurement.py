"""
Unit tests for the measurement calculator

Net weight, average grams per metre and the variance band
"""
import pytest

from loomsheet.services.measurement import (
    NO_BAND,
    average_in_band,
    band_limits,
    compute_derived,
    round2,
)


class TestRound2:
    """Half-up rounding to two places"""

    def test_rounds_half_up(self):
        assert round2(2.675) == 2.68
        assert round2(1.005) == 1.01

    def test_keeps_exact_values(self):
        assert round2(520) == 520.0


class TestComputeDerived:
    """Derived fields from mtrs, gw and cw"""

    def test_standard_roll(self):
        """500 m at 550 gross / 30 core gives 520 net and 1040 g/m"""
        result = compute_derived(500, 550, 30)

        assert result.nw == 520
        assert result.average == 1040
        assert result.variance_band == NO_BAND

    def test_band_when_width_and_gram_known(self):
        result = compute_derived(500, 550, 30, width=0.5, gram=2000, tolerance=0.05)

        assert result.variance_band == "UB: 1050.00 / LB: 950.00"

    def test_net_weight_never_negative(self):
        result = compute_derived(100, 20, 30)

        assert result.nw == 0
        assert result.average == 0

    def test_zero_length_has_no_average(self):
        result = compute_derived(0, 550, 30, width=0.5, gram=2000)

        assert result.nw == 520
        assert result.average == 0
        assert result.variance_band == NO_BAND

    def test_average_is_rounded(self):
        result = compute_derived(3, 10, 0)

        assert result.average == 3333.33


class TestBandLimits:
    """Upper and lower limits around width * gram"""

    def test_limits(self):
        assert band_limits(0.5, 2000, 0.05) == (1050.0, 950.0)

    @pytest.mark.parametrize("width,gram", [(None, 2000), (0.5, None), (0, 2000), (0.5, 0)])
    def test_missing_spec_has_no_band(self, width, gram):
        assert band_limits(width, gram, 0.05) is None

    def test_custom_tolerance(self):
        assert band_limits(1, 100, 0.1) == (110.0, 90.0)


class TestAverageInBand:
    """Band check shown on roll entry"""

    def test_inside(self):
        assert average_in_band(1040, 0.5, 2000, 0.05) is True

    def test_outside(self):
        assert average_in_band(1100, 0.5, 2000, 0.05) is False

    def test_boundaries_are_inside(self):
        assert average_in_band(1050, 0.5, 2000, 0.05) is True
        assert average_in_band(950, 0.5, 2000, 0.05) is True

    def test_no_band_without_width_and_gram(self):
        assert average_in_band(1040, None, None, 0.05) is None

    def test_no_band_without_average(self):
        assert average_in_band(0, 0.5, 2000, 0.05) is None
