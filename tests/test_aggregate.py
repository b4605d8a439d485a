import pytest

from cyclistic.errors import PipelineError
from cyclistic.features.aggregate import TripAggregator


@pytest.fixture
def aggregator(sample_con):
    return TripAggregator(sample_con)


def test_total_rows(aggregator):
    assert aggregator.total_rows() == 5


def test_rider_share(aggregator):
    df = aggregator.aggregate(["member_casual"])

    assert list(df["member_casual"]) == ["member", "casual"]
    assert list(df["trip_count"]) == [3, 2]
    assert list(df["pct_of_total"]) == [60.0, 40.0]
    # the negative-duration casual trip is ignored by the mean
    assert list(df["avg_ride_length_min"]) == pytest.approx([20.0, 60.0])


@pytest.mark.parametrize("keys", [
    ["member_casual"],
    ["rideable_type"],
    ["start_station_name"],
    ["member_casual", "day_of_week"],
    ["member_casual", "month", "hour_of_day"],
    ["same_station"],
])
def test_counts_and_shares_cover_every_trip(aggregator, keys):
    df = aggregator.aggregate(keys)

    assert df["trip_count"].sum() == 5
    assert df["pct_of_total"].sum() == pytest.approx(100.0, abs=0.05 * len(df))


def test_percentages_use_full_table_denominator(aggregator):
    df = aggregator.aggregate(["member_casual", "rideable_type"])
    member_classic = df[(df["member_casual"] == "member") & (df["rideable_type"] == "classic_bike")]

    # 2 of 5 trips overall, not 2 of the 3 member trips
    assert member_classic["pct_of_total"].iloc[0] == 40.0


def test_null_station_forms_its_own_group(aggregator):
    df = aggregator.aggregate(["start_station_name"])

    assert df["start_station_name"].isna().sum() == 1
    assert df[df["start_station_name"].isna()]["trip_count"].iloc[0] == 1


def test_ties_are_broken_by_key(aggregator):
    df = aggregator.aggregate(["start_station_name"], with_duration=False)

    assert list(df["start_station_name"][:2]) == ["Alpha", "Beta"]
    assert list(df["trip_count"][:2]) == [2, 2]
    assert "avg_ride_length_min" not in df.columns


def test_most_popular_overall(aggregator):
    df = aggregator.most_popular("start_station_name", n=1)

    assert len(df) == 1
    assert df["start_station_name"].iloc[0] == "Alpha"
    assert df["trip_count"].iloc[0] == 2
    assert df["pct_of_total"].iloc[0] == 40.0


def test_most_popular_per_rider(aggregator):
    df = aggregator.most_popular("start_station_name", n=5, by="member_casual")

    member = df[df["member_casual"] == "member"]
    casual = df[df["member_casual"] == "casual"]
    assert list(member["start_station_name"]) == ["Beta", "Alpha"]
    assert list(member["popularity_rank"]) == [1, 2]
    # the NULL start station is never ranked
    assert list(casual["start_station_name"]) == ["Alpha"]


def test_duration_summary(aggregator):
    df = aggregator.duration_summary("member_casual").set_index("member_casual")

    assert df.loc["member", "mean_ride_length_min"] == pytest.approx(20.0)
    assert df.loc["member", "median_ride_length_min"] == pytest.approx(20.0)
    assert df.loc["member", "min_ride_length_min"] == pytest.approx(10.0)
    assert df.loc["member", "max_ride_length_min"] == pytest.approx(30.0)
    assert df.loc["casual", "rides_with_length"] == 1


@pytest.mark.parametrize("keys", [["ride_id"], ["member_casual; DROP TABLE trips_clean"], []])
def test_unknown_keys_are_rejected(aggregator, keys):
    with pytest.raises(PipelineError):
        aggregator.aggregate(keys)


def test_aggregation_does_not_modify_cleaned_table(aggregator, sample_con):
    before = sample_con.execute("SELECT * FROM trips_clean ORDER BY ride_id").df()
    aggregator.aggregate(["member_casual", "day_of_week"])
    aggregator.most_popular("end_station_name", by="member_casual")
    after = sample_con.execute("SELECT * FROM trips_clean ORDER BY ride_id").df()

    assert before.equals(after)


def test_total_rows_on_missing_table_raises_pipeline_error(con):
    with pytest.raises(PipelineError, match="Aggregation query failed"):
        TripAggregator(con, table="no_such_table").total_rows()
