"""
Tests for the business reports over the shared snapshot.
"""
import pandas as pd
import pytest
from errors import ConfigurationError, DataIntegrityError
from ingestion.snapshot import DataSnapshot
from transformation import reports
from transformation.reports import REPORTS, run_report, run_reports
from conftest import build_frames, make_orders


def _snapshot_with_orders(frames, rows):
    frames = dict(frames)
    frames['orders'] = make_orders(rows)
    return DataSnapshot.from_frames(frames)


class TestCustomerRankings:

    def test_top_customers_by_orders(self, snapshot):
        result = reports.top_customers_by_orders(snapshot, n=2)

        assert result.frame['customer_id'].tolist() == [2, 1]
        assert result.frame['order_count'].tolist() == [5, 3]
        assert result.frame['customer_name'].tolist() == ['Bob', 'Alice']

    def test_top_customers_by_orders_keeps_ties(self, snapshot):
        result = reports.top_customers_by_orders(snapshot, n=3)

        assert result.frame['customer_id'].tolist() == [2, 1, 3, 4, 6]
        assert result.frame['rank'].tolist() == [1, 2, 3, 3, 3]

    def test_top_three_with_four_way_tie_at_third(self, frames):
        rows = [(1, 1, '2024-06-01', 10.0, 'Delivered')] * 5
        rows += [(2, 2, '2024-06-01', 10.0, 'Delivered')] * 4
        for customer_id in (3, 4, 5, 6):
            rows += [(3, customer_id, '2024-06-01', 10.0, 'Delivered')] * 2
        snapshot = _snapshot_with_orders(frames, rows)

        result = reports.top_customers_by_orders(snapshot, n=3)

        assert result.frame['customer_id'].tolist() == [1, 2, 3, 4, 5, 6]
        assert result.frame['rank'].tolist() == [1, 2, 3, 3, 3, 3]

    def test_top_customers_by_spend(self, snapshot):
        result = reports.top_customers_by_spend(snapshot, n=3)

        assert result.frame['customer_id'].tolist() == [4, 1, 6]
        assert result.frame['total_revenue'].tolist() == [4000.0, 3300.0, 3000.0]

    def test_negative_n_rejected(self, snapshot):
        with pytest.raises(ConfigurationError):
            reports.top_customers_by_spend(snapshot, n=-1)


class TestCancellations:

    def test_customer_cancellation_rate(self, snapshot):
        frame = reports.customer_cancellation_rate(snapshot).frame

        assert frame['customer_id'].tolist() == [3, 6, 1, 2, 4]
        assert frame['cancellation_rate_pct'].tolist() == [50.0, 50.0, 25.0, 0.0, 0.0]
        assert frame.set_index('customer_id').loc[1, 'total_orders'] == 4

    def test_customers_without_orders_not_reported(self, snapshot):
        frame = reports.customer_cancellation_rate(snapshot).frame
        assert 5 not in frame['customer_id'].tolist()

    def test_restaurant_cancellations(self, snapshot):
        frame = reports.restaurant_cancellations(snapshot).frame

        assert frame['restaurant_id'].tolist() == [12, 13]
        assert frame['cancelled_orders'].tolist() == [2, 1]
        assert frame['restaurant_name'].tolist() == ['Pizza Bay', 'Curry House']


class TestInactiveCustomers:

    def test_default_ninety_days(self, snapshot, as_of):
        frame = reports.inactive_customers(snapshot, as_of=as_of).frame

        # never ordered first, then oldest last order
        assert frame['customer_id'].tolist() == [5, 3, 6]

    def test_ninety_one_days_included_ninety_excluded(self, snapshot, as_of):
        ids = reports.inactive_customers(snapshot, as_of=as_of).frame['customer_id'].tolist()
        assert 6 in ids      # last order 91 days ago
        assert 4 not in ids  # last order exactly 90 days ago

    def test_threshold_is_configurable(self, snapshot, as_of):
        frame = reports.inactive_customers(snapshot, as_of=as_of, inactive_days=89).frame
        assert 4 in frame['customer_id'].tolist()

    def test_negative_days_rejected(self, snapshot, as_of):
        with pytest.raises(ConfigurationError):
            reports.inactive_customers(snapshot, as_of=as_of, inactive_days=-1)

    @pytest.mark.parametrize('value', ['not a date', '', 'NaT', pd.NaT])
    def test_invalid_as_of_rejected(self, snapshot, value):
        with pytest.raises(ConfigurationError):
            reports.inactive_customers(snapshot, as_of=value)

    @pytest.mark.parametrize('value', ['', 'NaT'])
    def test_invalid_as_of_rejected_before_running(self, snapshot, value):
        with pytest.raises(ConfigurationError):
            run_reports(snapshot, params={'as_of': value})


class TestHighValueLowFrequency:

    def test_defaults(self, snapshot):
        frame = reports.high_value_low_frequency(snapshot).frame
        assert frame['customer_id'].tolist() == [4, 1]

    def test_spend_boundary_is_strict(self, frames):
        rows = [
            (1, 1, '2024-06-01', 1000.00, 'Delivered'),
            (2, 1, '2024-06-02', 1000.00, 'Delivered'),
            (3, 1, '2024-06-03', 1000.00, 'Delivered'),
            (4, 2, '2024-06-01', 1000.00, 'Delivered'),
            (5, 2, '2024-06-02', 1000.00, 'Delivered'),
            (6, 2, '2024-06-03', 1000.01, 'Delivered'),
        ]
        snapshot = _snapshot_with_orders(frames, rows)

        frame = reports.high_value_low_frequency(snapshot).frame

        assert frame['customer_id'].tolist() == [2]
        assert frame['total_revenue'].tolist() == [3000.01]

    def test_order_ceiling_is_inclusive(self, frames):
        rows = [(i, 1, '2024-06-01', 1500.0, 'Delivered') for i in range(1, 5)]
        snapshot = _snapshot_with_orders(frames, rows)

        assert reports.high_value_low_frequency(snapshot).frame.empty
        assert len(reports.high_value_low_frequency(snapshot, max_orders=4)) == 1


class TestRevenueReports:

    def test_monthly_revenue_trend(self, snapshot):
        frame = reports.monthly_revenue_trend(snapshot).frame

        assert frame['month'].tolist() == ['2024-03', '2024-04', '2024-05', '2024-06']
        assert frame['order_count'].tolist() == [3, 2, 2, 4]
        assert frame['total_revenue'].tolist() == [5500.0, 4250.0, 1050.0, 3000.0]
        assert pd.isna(frame.loc[0, 'revenue_growth_pct'])
        assert frame['revenue_growth_pct'].tolist()[1:] == [-22.73, -75.29, 185.71]

    def test_payment_method_summary(self, snapshot):
        frame = reports.payment_method_summary(snapshot).frame

        assert frame['payment_method'].tolist() == ['UPI', 'Card', 'Cash']
        assert frame['order_count'].tolist() == [5, 4, 2]
        assert frame['total_revenue'].tolist() == [5450.0, 7300.0, 1050.0]
        assert frame['usage_pct'].tolist() == [45.45, 36.36, 18.18]

    def test_order_status_breakdown(self, snapshot):
        frame = reports.order_status_breakdown(snapshot).frame

        assert frame['order_status'].tolist() == ['Delivered', 'Cancelled']
        assert frame['order_count'].tolist() == [11, 3]
        assert frame['share_pct'].tolist() == [78.57, 21.43]

    def test_customer_lifetime_value(self, snapshot, as_of):
        frame = reports.customer_lifetime_value(snapshot, as_of=as_of).frame

        assert frame['customer_id'].tolist() == [4, 1, 6, 3, 2]
        assert frame.set_index('customer_id').loc[2, 'average_order_value'] == 300.0


class TestRestaurantReports:

    def test_customers_by_location(self, snapshot):
        frame = reports.customers_by_location(snapshot).frame

        assert frame['location'].tolist() == ['Delhi', 'Mumbai', 'Pune']
        assert frame['customer_count'].tolist() == [3, 2, 1]

    def test_cuisine_average_rating(self, snapshot):
        frame = reports.cuisine_average_rating(snapshot).frame

        assert frame['cuisine'].tolist() == ['Indian', 'Chinese', 'Italian']
        assert frame['avg_rating'].tolist() == [4.3, 4.0, 3.5]
        assert frame['restaurant_count'].tolist() == [2, 1, 1]

    def test_top_restaurants_by_revenue(self, snapshot):
        frame = reports.top_restaurants_by_revenue(snapshot, n=2).frame

        assert frame['restaurant_id'].tolist() == [10, 13]
        assert frame['total_revenue'].tolist() == [7300.0, 3750.0]

    def test_restaurant_rank_by_location(self, snapshot):
        frame = reports.restaurant_rank_by_location(snapshot).frame

        assert frame['location'].tolist() == ['Delhi', 'Delhi', 'Mumbai', 'Mumbai']
        assert frame['restaurant_id'].tolist() == [10, 12, 13, 11]
        assert frame['rank'].tolist() == [1, 2, 1, 2]

    def test_cuisine_popularity(self, snapshot):
        frame = reports.cuisine_popularity(snapshot).frame

        assert frame['cuisine'].tolist() == ['Indian', 'Chinese', 'Italian']
        assert frame['order_count'].tolist() == [7, 3, 1]
        assert frame['rank'].tolist() == [1, 2, 3]


class TestRiderReports:

    def test_rider_utilization(self, snapshot):
        frame = reports.rider_utilization(snapshot).frame

        assert frame['rider_id'].tolist() == [100, 101, 102]
        assert frame['delivery_count'].tolist() == [6, 5, 0]
        assert frame['low_activity'].tolist() == [False, False, True]
        assert frame['delivery_share_pct'].tolist() == [54.55, 45.45, 0.0]

    def test_low_activity_threshold(self, snapshot):
        frame = reports.rider_utilization(snapshot, low_activity_threshold=6).frame
        assert frame['low_activity'].tolist() == [False, True, True]

    def test_vehicle_type_summary(self, snapshot):
        frame = reports.vehicle_type_summary(snapshot).frame

        assert frame['vehicle_type'].tolist() == ['Bike', 'Scooter']
        assert frame['rider_count'].tolist() == [2, 1]
        assert frame['delivery_count'].tolist() == [6, 5]


class TestSegmentationViews:

    def test_rfm_segmentation(self, snapshot, as_of):
        frame = reports.rfm_segmentation(snapshot, as_of=as_of).frame.set_index('customer_id')

        assert frame.loc[1, ['r_score', 'f_score', 'm_score']].tolist() == [5, 2, 5]
        assert frame.loc[1, 'segment'] == 'Others'
        assert frame.loc[2, 'segment'] == 'Loyal'
        assert frame.loc[3, 'segment'] == 'At Risk'
        assert frame.loc[4, 'segment'] == 'At Risk'

    def test_customers_without_delivered_orders_excluded(self, snapshot, as_of):
        frame = reports.rfm_segmentation(snapshot, as_of=as_of).frame
        assert 5 not in frame['customer_id'].tolist()
        assert 5 not in reports.customer_classification(snapshot).frame['customer_id'].tolist()

    def test_segment_counts_sum_to_delivering_customers(self, snapshot, as_of):
        summary = reports.rfm_segment_summary(snapshot, as_of=as_of).frame

        assert summary.set_index('segment')['customer_count'].to_dict() == {
            'Champion': 0, 'Loyal': 1, 'At Risk': 3, 'Others': 1
        }
        assert summary['customer_count'].sum() == 5

    def test_customer_classification_boundaries(self, snapshot):
        frame = reports.customer_classification(snapshot).frame.set_index('customer_id')

        assert frame.loc[4, 'tier'] == 'Silver'  # exactly 4000
        assert frame.loc[3, 'tier'] == 'Bronze'  # exactly 2000
        assert frame.loc[1, 'tier'] == 'Silver'

    def test_tier_summary(self, snapshot):
        summary = reports.tier_summary(snapshot).frame
        assert summary['customer_count'].tolist() == [0, 3, 2]


class TestIntegrity:

    def test_orphaned_orders_are_counted(self, snapshot):
        result = reports.top_customers_by_spend(snapshot)

        assert result.skipped_rows == 1
        assert 42 not in result.frame['customer_id'].tolist()
        assert isinstance(result.integrity_errors[0], DataIntegrityError)

    def test_strict_mode_raises(self, snapshot):
        with pytest.raises(DataIntegrityError) as excinfo:
            reports.top_customers_by_spend(snapshot, strict=True)
        assert excinfo.value.skipped_rows == 1
        assert excinfo.value.examples == [42]

    def test_reports_do_not_mutate_snapshot(self, snapshot, as_of):
        before = {name: df.copy() for name, df in snapshot.as_dict().items()}
        run_reports(snapshot, params={'as_of': as_of})
        for name, df in snapshot.as_dict().items():
            pd.testing.assert_frame_equal(df, before[name])


class TestRunner:

    def test_every_report_registered(self):
        assert len(REPORTS) == 21

    def test_runs_are_byte_identical(self, as_of):
        first = run_reports(DataSnapshot.from_frames(build_frames()), params={'as_of': as_of})
        second = run_reports(DataSnapshot.from_frames(build_frames()), params={'as_of': as_of})

        assert list(first) == list(second)
        for name in first:
            assert first[name].to_csv() == second[name].to_csv()

    def test_unknown_report_rejected(self, snapshot):
        with pytest.raises(ConfigurationError):
            run_report('no_such_report', snapshot)

    def test_invalid_params_rejected_before_running(self, snapshot):
        with pytest.raises(ConfigurationError):
            run_reports(snapshot, params={'inactive_days': -5})

    def test_only_accepted_params_passed(self, snapshot, as_of):
        result = run_report('customers_by_location', snapshot, as_of=as_of, n=3, strict=True)
        assert len(result) == 3

    def test_rows_use_none_for_nulls(self, snapshot, as_of):
        rows = run_report('inactive_customers', snapshot, as_of=as_of).rows()
        assert rows[0]['customer_id'] == 5
        assert rows[0]['last_order_date'] is None
