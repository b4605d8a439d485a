import logging
import os

import matplotlib
matplotlib.use("Agg")

import matplotlib as mpl
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker
import pandas as pd
import seaborn as sns

from cyclistic.errors import PipelineError

# Set global formatting: No scientific notation, use commas
mpl.rcParams['axes.formatter.useoffset'] = False
mpl.rcParams['axes.formatter.limits'] = [-20, 20]

logger = logging.getLogger(__name__)

WEEKDAYS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
MONTHS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

RIDER_COLORS = {'member': '#2ecc71', 'casual': '#3498db'}
RIDER_LABELS = {'member': 'Annual Member', 'casual': 'Casual Rider'}


class TripReport:
    """
    Renders charts and a short narrative from aggregate tables.
    Never sees individual trips, only the DataFrames the aggregator returns.
    """

    def __init__(self, output_dir):
        self.output_dir = output_dir
        try:
            os.makedirs(self.output_dir, exist_ok=True)
        except OSError as e:
            raise PipelineError(f"Cannot create output directory {output_dir}: {e}") from e

    def _save_plot(self, filename: str):
        """Internal helper to standardize how plots are saved."""
        if not filename.endswith(('.png', '.jpg', '.pdf')):
            filename += '.png'

        save_path = os.path.join(self.output_dir, filename)
        plt.tight_layout()
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        plt.close()
        logger.info(f"Plot saved: {save_path}")
        return save_path

    def _palette(self, df, hue='member_casual'):
        # seaborn rejects a dict palette that misses a hue level
        if set(df[hue].dropna()) <= set(RIDER_COLORS):
            return RIDER_COLORS
        return None

    def _thousands(self, axis='y'):
        ax = plt.gca()
        target = ax.yaxis if axis == 'y' else ax.xaxis
        target.set_major_formatter(ticker.StrMethodFormatter('{x:,.0f}'))

    def plot_user_composition(self, df, filename="plot_user_composition"):
        if df.empty:
            logger.warning("No rider share data, skipping composition plot")
            return None

        labels = [RIDER_LABELS.get(v, str(v)) for v in df['member_casual']]
        colors = [RIDER_COLORS.get(v, '#95a5a6') for v in df['member_casual']]
        explode_values = [0.05] + [0] * (len(df) - 1)

        plt.figure(figsize=(8, 8))
        plt.pie(
            df['trip_count'],
            labels=labels,
            autopct='%1.1f%%',
            colors=colors,
            startangle=140,
            pctdistance=0.85,
            explode=explode_values
        )

        # Donut hole
        plt.gca().add_artist(plt.Circle((0, 0), 0.70, fc='white'))

        total_trips = int(df['trip_count'].sum())
        plt.text(0, 0, f'Total Trips\n{total_trips:,}', ha='center', va='center', fontsize=12, fontweight='bold')
        plt.title("Rider Segment Composition", fontsize=15, fontweight='bold')
        return self._save_plot(filename)

    def plot_vehicle_mix(self, df, filename="plot_vehicle_mix"):
        if df.empty:
            logger.warning("No vehicle data, skipping vehicle mix plot")
            return None

        plt.figure(figsize=(12, 6))
        sns.barplot(data=df, x='rideable_type', y='trip_count', hue='member_casual', palette=self._palette(df))
        self._thousands()

        plt.title("Vehicle Preference: Rides per Bike Type", fontsize=15, fontweight='bold')
        plt.xlabel("")
        plt.ylabel("Total Rides")
        plt.legend(title="")
        sns.despine()
        return self._save_plot(filename)

    def plot_day_of_week(self, df, filename="plot_day_of_week"):
        if df.empty:
            logger.warning("No weekday data, skipping weekday plot")
            return None

        order = [d for d in WEEKDAYS if d in set(df['day_of_week'])]

        plt.figure(figsize=(12, 6))
        sns.barplot(data=df, x='day_of_week', y='trip_count', hue='member_casual',
                    order=order, palette=self._palette(df))
        self._thousands()

        plt.title("Weekly Utilization: Weekday vs. Weekend Demand", fontsize=15, fontweight='bold')
        plt.ylabel("Total Rides")
        plt.xlabel("")
        plt.legend(title="")
        sns.despine()
        return self._save_plot(filename)

    def plot_avg_duration_by_weekday(self, df, filename="plot_avg_duration_by_weekday"):
        if df.empty or 'avg_ride_length_min' not in df:
            logger.warning("No ride length data, skipping average duration plot")
            return None

        order = [d for d in WEEKDAYS if d in set(df['day_of_week'])]

        plt.figure(figsize=(12, 6))
        sns.barplot(data=df, x='day_of_week', y='avg_ride_length_min', hue='member_casual',
                    order=order, palette=self._palette(df))

        plt.title("Average Ride Length by Weekday", fontsize=15, fontweight='bold')
        plt.ylabel("Minutes per Trip")
        plt.xlabel("")
        plt.legend(title="")
        sns.despine()
        return self._save_plot(filename)

    def plot_monthly_volume_by_user(self, df, filename="plot_monthly_volume_by_user"):
        if df.empty:
            logger.warning("No monthly data, skipping monthly volume plot")
            return None

        df_pivot = df.pivot(index='month', columns='member_casual', values='trip_count').fillna(0)
        df_pivot = df_pivot.reindex([m for m in MONTHS if m in df_pivot.index])

        positions = range(len(df_pivot.index))

        plt.figure(figsize=(14, 7))
        for user_type in df_pivot.columns:
            color = RIDER_COLORS.get(user_type)
            label = RIDER_LABELS.get(user_type, str(user_type))
            plt.fill_between(positions, df_pivot[user_type], color=color, alpha=0.15)
            plt.plot(positions, df_pivot[user_type],
                     marker='o', markersize=5, linewidth=2.5, color=color, label=label)

        plt.xticks(positions, df_pivot.index)
        self._thousands()
        plt.title("Ride Volume Trends: Member vs. Casual Riders", fontsize=16, fontweight='bold', loc='left')
        plt.ylabel("Monthly Trip Count")
        plt.xlabel("")
        plt.legend(frameon=True, facecolor='white', edgecolor='none')
        plt.grid(axis='y', linestyle='--', alpha=0.3)
        sns.despine()
        return self._save_plot(filename)

    def plot_hourly_demand(self, df, filename="plot_hourly_demand"):
        if df.empty:
            logger.warning("No hourly data, skipping hourly demand plot")
            return None

        plt.figure(figsize=(12, 6))
        sns.lineplot(data=df.sort_values('hour_of_day'), x='hour_of_day', y='trip_count',
                     hue='member_casual', marker='o', palette=self._palette(df))

        # Highlight Rush Hours
        plt.axvspan(7.5, 9.5, color='orange', alpha=0.15, label='AM Rush')
        plt.axvspan(16.5, 18.5, color='orange', alpha=0.15, label='PM Rush')

        self._thousands()
        plt.xticks(range(24))
        plt.title("Hourly Demand Profile: Trip Starts by Hour", fontsize=15, fontweight='bold')
        plt.xlabel("Hour of Day (24h)")
        plt.ylabel("Total Trip Starts")
        plt.legend()
        sns.despine()
        return self._save_plot(filename)

    def plot_round_trip_share(self, df, filename="plot_round_trip_share"):
        if df.empty:
            logger.warning("No round-trip data, skipping round-trip plot")
            return None

        shares = round_trip_shares(df)

        plt.figure(figsize=(8, 6))
        ax = sns.barplot(data=shares, x='member_casual', y='round_trip_pct', hue='member_casual',
                         palette=self._palette(shares), legend=False)
        for p in ax.patches:
            ax.annotate(f'{p.get_height():.1f}%',
                        (p.get_x() + p.get_width() / 2, p.get_height()),
                        xytext=(0, 5), textcoords='offset points', ha='center', fontweight='bold')

        plt.title("Round Trips: Same Start and End Point", fontsize=15, fontweight='bold')
        plt.ylabel("Share of Rider's Trips (%)")
        plt.xlabel("")
        sns.despine()
        return self._save_plot(filename)

    def plot_top_stations(self, df, station_col, title, filename):
        if df.empty:
            logger.warning(f"No {station_col} ranking, skipping {filename}")
            return None

        groups = list(df.groupby('member_casual', sort=True)) if 'member_casual' in df else [(None, df)]
        fig, axes = plt.subplots(1, len(groups), figsize=(8 * len(groups), 7), squeeze=False)

        for ax, (rider, sub) in zip(axes[0], groups):
            color = RIDER_COLORS.get(rider, '#34495e')
            sns.barplot(data=sub, y=station_col, x='trip_count', color=color, ax=ax)
            for i, p in enumerate(ax.patches):
                ax.annotate(f'{int(sub.iloc[i]["trip_count"]):,}',
                            (p.get_width(), p.get_y() + p.get_height() / 2),
                            xytext=(5, 0), textcoords='offset points', va='center', fontweight='bold')
            ax.set_title(RIDER_LABELS.get(rider, "All Riders"), fontsize=13)
            ax.set_xlabel("Trips")
            ax.set_ylabel("")

        fig.suptitle(title, fontsize=16, fontweight='bold')
        sns.despine(left=True)
        return self._save_plot(filename)

    def render_all(self, aggregates):
        """Draws every chart it has data for. Returns {chart name: path}."""
        charts = {
            'user_composition': self.plot_user_composition(aggregates['rider_share']),
            'vehicle_mix': self.plot_vehicle_mix(aggregates['vehicle_by_rider']),
            'day_of_week': self.plot_day_of_week(aggregates['weekday_by_rider']),
            'avg_duration_by_weekday': self.plot_avg_duration_by_weekday(aggregates['weekday_by_rider']),
            'monthly_volume': self.plot_monthly_volume_by_user(aggregates['month_by_rider']),
            'hourly_demand': self.plot_hourly_demand(aggregates['hour_by_rider']),
            'round_trip_share': self.plot_round_trip_share(aggregates['round_trips_by_rider']),
            'top_start_stations': self.plot_top_stations(
                aggregates['top_start_stations'], 'start_station_name',
                "High-Volume Nodes: Top Start Stations", "plot_top_start_stations"),
            'top_end_stations': self.plot_top_stations(
                aggregates['top_end_stations'], 'end_station_name',
                "High-Volume Nodes: Top End Stations", "plot_top_end_stations"),
        }
        return {name: path for name, path in charts.items() if path is not None}

    def summarize(self, aggregates):
        """Plain-text findings comparing rider categories."""
        rider_share = aggregates['rider_share']
        if rider_share.empty:
            return "No trips survived cleaning; nothing to report."

        total = int(rider_share['trip_count'].sum())
        lines = [f"{total:,} trips analysed."]

        durations = aggregates['duration_summary'].set_index('member_casual')
        weekday = aggregates['weekday_by_rider']
        hourly = aggregates['hour_by_rider']
        round_trips = round_trip_shares(aggregates['round_trips_by_rider']).set_index('member_casual')

        for row in rider_share.itertuples(index=False):
            rider = row.member_casual
            label = RIDER_LABELS.get(rider, str(rider))
            lines.append(f"{label}s took {row.pct_of_total:.1f}% of trips ({int(row.trip_count):,}).")

            if rider in durations.index and pd.notna(durations.loc[rider, 'mean_ride_length_min']):
                d = durations.loc[rider]
                lines.append(
                    f"  Average ride {d['mean_ride_length_min']:.1f} min "
                    f"(median {d['median_ride_length_min']:.1f} min)."
                )

            busiest_day = _busiest(weekday, rider, 'day_of_week')
            if busiest_day is not None:
                lines.append(f"  Busiest day: {busiest_day}.")

            busiest_hour = _busiest(hourly, rider, 'hour_of_day')
            if busiest_hour is not None:
                lines.append(f"  Peak hour: {int(busiest_hour):02d}:00.")

            if rider in round_trips.index:
                lines.append(f"  Round trips: {round_trips.loc[rider, 'round_trip_pct']:.1f}% of their rides.")

        return "\n".join(lines)


def print_tables(aggregates):
    for name, df in aggregates.items():
        print("\n" + "-" * 80)
        print(name.replace("_", " ").upper())
        print("-" * 80)
        print(df.to_string(index=False) if not df.empty else "(empty)")


def round_trip_shares(df):
    """Share of each rider category's trips that start and end at the same point."""
    totals = df.groupby('member_casual')['trip_count'].sum()
    same = df[df['same_station'] == True].groupby('member_casual')['trip_count'].sum()  # noqa: E712
    shares = (100.0 * same.reindex(totals.index, fill_value=0) / totals).round(1)
    return shares.rename('round_trip_pct').reset_index()


def _busiest(df, rider, column):
    # Aggregates arrive sorted by trip_count desc, then key, so the first row wins
    sub = df[df['member_casual'] == rider]
    if sub.empty:
        return None
    return sub.iloc[0][column]
