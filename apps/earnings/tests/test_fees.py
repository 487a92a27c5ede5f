import pytest
from decimal import Decimal

from apps.earnings.fees import calculate_fees, project_growth, to_money
from apps.earnings.ledger import split_for


class TestCalculateFees:

    def test_forty_dollar_job(self):
        fees = calculate_fees(Decimal('40'))
        assert fees == {
            'platform_fee': Decimal('2.80'),
            'future_fund': Decimal('1.20'),
            'net_amount': Decimal('36.00'),
        }

    def test_zero(self):
        fees = calculate_fees(0)
        assert fees['platform_fee'] == fees['future_fund'] == fees['net_amount'] == Decimal('0.00')

    def test_components_round_half_up_independently(self):
        # 0.50 * 7% = 0.035 and 0.50 * 3% = 0.015, both exact halves.
        fees = calculate_fees('0.50')
        assert fees['platform_fee'] == Decimal('0.04')
        assert fees['future_fund'] == Decimal('0.02')
        assert fees['net_amount'] == Decimal('0.44')

    def test_net_absorbs_rounding_remainder(self):
        fees = calculate_fees('10.05')
        assert fees['platform_fee'] == Decimal('0.70')
        assert fees['future_fund'] == Decimal('0.30')
        assert fees['net_amount'] == Decimal('9.05')

    @pytest.mark.parametrize('gross', ['0.01', '1.99', '12.34', '33.33', '99.99', '250.55', '500.00'])
    def test_parts_sum_to_gross(self, gross):
        fees = calculate_fees(gross)
        assert fees['platform_fee'] + fees['future_fund'] + fees['net_amount'] == Decimal(gross)
        assert all(part >= 0 for part in fees.values())

    def test_deterministic(self):
        assert calculate_fees('27.45') == calculate_fees(Decimal('27.45'))

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            calculate_fees('-1.00')

    @pytest.mark.parametrize('amount', ['abc', None, float('nan'), 'Infinity'])
    def test_malformed_raises(self, amount):
        with pytest.raises(ValueError):
            calculate_fees(amount)


class TestCashSplit:

    def test_cash_pays_everything_as_net(self):
        split = split_for('40', 'cash')
        assert split == {
            'platform_fee': Decimal('0.00'),
            'future_fund': Decimal('0.00'),
            'net_amount': Decimal('40.00'),
        }

    def test_card_uses_fee_split(self):
        assert split_for('40', 'card') == calculate_fees('40')


class TestProjectGrowth:

    def test_ten_years_at_seven_percent(self):
        assert project_growth(1000, 10, 0.07) == pytest.approx(1967.15, abs=0.01)

    def test_zero_years_returns_principal(self):
        assert project_growth(250, 0, 0.07) == 250.0

    def test_zero_principal(self):
        assert project_growth(0, 10, 0.07) == 0.0

    def test_accepts_decimal(self):
        assert to_money(project_growth(Decimal('100.00'), 10, 0.07)) == Decimal('196.72')
