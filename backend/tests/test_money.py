import unittest
from decimal import Decimal

from storefront.money import (
    PROMO_TYPE_FIXED,
    PROMO_TYPE_PERCENTAGE,
    bps_to_percent,
    compute_discount,
    from_cents,
    line_total,
    percent_to_bps,
    round2,
    sum_amounts,
    to_cents,
)


class RoundingTests(unittest.TestCase):
    def test_round2_is_half_up(self):
        self.assertEqual(round2(Decimal("2.675")), Decimal("2.68"))
        self.assertEqual(round2(Decimal("2.665")), Decimal("2.67"))
        self.assertEqual(round2(Decimal("-1.005")), Decimal("-1.01"))

    def test_round2_accepts_float_without_binary_noise(self):
        self.assertEqual(round2(0.1 + 0.2), Decimal("0.30"))

    def test_round2_rejects_garbage(self):
        with self.assertRaises(ValueError):
            round2("ten dollars")

    def test_cents_conversion(self):
        self.assertEqual(to_cents(Decimal("19.99")), 1999)
        self.assertEqual(from_cents(1999), Decimal("19.99"))
        self.assertIsNone(from_cents(None))

    def test_basis_points(self):
        self.assertEqual(percent_to_bps(Decimal("12.5")), 1250)
        self.assertEqual(bps_to_percent(1250), Decimal("12.50"))

    def test_line_total_and_sum(self):
        self.assertEqual(line_total(3, Decimal("0.10")), Decimal("0.30"))
        self.assertEqual(sum_amounts([Decimal("0.10")] * 10), Decimal("1.00"))
        self.assertEqual(sum_amounts([]), Decimal("0.00"))


class ComputeDiscountTests(unittest.TestCase):
    def test_percentage_uncapped(self):
        self.assertEqual(
            compute_discount(Decimal("80.00"), PROMO_TYPE_PERCENTAGE, Decimal("15")),
            Decimal("12.00"),
        )

    def test_percentage_clamped_to_cap(self):
        discount = compute_discount(Decimal("300.00"), PROMO_TYPE_PERCENTAGE, Decimal("10"), Decimal("20.00"))
        self.assertEqual(discount, Decimal("20.00"))
        self.assertEqual(Decimal("300.00") - discount, Decimal("280.00"))

    def test_percentage_below_cap_is_untouched(self):
        self.assertEqual(
            compute_discount(Decimal("100.00"), PROMO_TYPE_PERCENTAGE, Decimal("10"), Decimal("20.00")),
            Decimal("10.00"),
        )

    def test_zero_cap_is_still_a_cap(self):
        self.assertEqual(
            compute_discount(Decimal("100.00"), PROMO_TYPE_PERCENTAGE, Decimal("10"), Decimal("0")),
            Decimal("0.00"),
        )

    def test_percentage_rounds_half_up(self):
        # 33.33 * 15% = 4.9995
        self.assertEqual(
            compute_discount(Decimal("33.33"), PROMO_TYPE_PERCENTAGE, Decimal("15")),
            Decimal("5.00"),
        )

    def test_fixed_never_exceeds_base(self):
        for base in ("0.00", "5.00", "19.99", "20.00", "250.00"):
            base = Decimal(base)
            discount = compute_discount(base, PROMO_TYPE_FIXED, Decimal("20.00"))
            self.assertLessEqual(discount, base)
            self.assertGreaterEqual(base - discount, Decimal("0.00"))

    def test_fixed_ignores_cap(self):
        self.assertEqual(
            compute_discount(Decimal("100.00"), PROMO_TYPE_FIXED, Decimal("30.00"), Decimal("5.00")),
            Decimal("30.00"),
        )

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            compute_discount(Decimal("10.00"), "bogo", Decimal("1"))
