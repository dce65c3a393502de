import pandas as pd
import streamlit as st
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from config import Config
from analysis_manager import ChurnAnalysisManager
from data_processor import records_to_frame
from filters import LocationFilter, SearchFilter, StatusFilter
from quick_filters import QUICK_FILTER_KEYS, build_quick_filters, quick_filter_counts


def main():
    st.set_page_config(page_title="Studio Membership Dashboard", layout="wide")
    st.title("🏋️ Studio Membership Dashboard")
    st.markdown("**Membership Churn Analysis**")

    config = Config()
    config.setup_logging()
    now = pd.Timestamp.now()

    st.sidebar.header("⚙️ Analysis Configuration")
    uploaded = st.sidebar.file_uploader("Membership export (CSV)", type="csv")
    window_size = st.sidebar.slider(
        "Months to analyse",
        min_value=1,
        max_value=24,
        value=config.DEFAULT_WINDOW_MONTHS,
        help="Trailing window ending with the current month"
    )

    with st.spinner("🔄 Loading and analyzing data..."):
        try:
            loader = ChurnAnalysisManager(now=now)
            loader.load_data(uploaded or config.MEMBERSHIPS_FILE)
            all_records = loader.get_records()
            locations = loader.studio_analysis_service.get_locations(all_records)

            st.sidebar.subheader("🔍 Data Filters")
            counts = quick_filter_counts(all_records, now)
            quick_filter = st.sidebar.selectbox(
                "Quick filter",
                options=list(counts),
                format_func=lambda key: f"{key} ({counts[key]})",
                index=QUICK_FILTER_KEYS.index("all"),
            )
            selected_locations = st.sidebar.multiselect("Studios", locations, default=[])
            selected_statuses = st.sidebar.multiselect("Status", ["Active", "Expired"], default=[])
            search_term = st.sidebar.text_input("Search members", value="")

            filters = build_quick_filters(quick_filter, now)
            if selected_locations:
                filters.append(LocationFilter(selected_locations))
            if selected_statuses:
                filters.append(StatusFilter(selected_statuses))
            if search_term.strip():
                filters.append(SearchFilter(search_term))

            analyzer = ChurnAnalysisManager(now=now, filters=filters, window_size=window_size)
            analyzer.set_records(all_records)
            analyzer.compute_churn_analysis()
            analyzer.compute_studio_analysis()

            churn_result = analyzer.get_churn_result()
            churn_summary = analyzer.get_churn_summary()
            studio_summary = analyzer.get_studio_summary()
            overview = analyzer.get_overview()
            expiring = analyzer.get_expiring_members()
            filter_stats, _ = analyzer.get_filter_statistics()

            st.sidebar.subheader("✅ Active Filters")
            for filter_desc, stats in filter_stats.items():
                st.sidebar.write(f"• {filter_desc} ({stats['included']} kept)")

            st.subheader("📈 Membership Overview")
            col1, col2, col3, col4, col5 = st.columns(5)
            with col1:
                st.metric("Total Members", overview.total_members)
            with col2:
                st.metric("Active", overview.active_members)
            with col3:
                st.metric("Expired", overview.expired_members)
            with col4:
                st.metric("With Sessions", overview.members_with_sessions)
            with col5:
                st.metric("Expiring This Month", overview.expiring_this_month)

            st.subheader("📉 Churn Analysis")
            current = churn_result.current_month
            col1, col2, col3, col4 = st.columns(4)
            with col1:
                st.metric("Current Churn Rate", f"{current.churn_rate}%")
            with col2:
                st.metric("Members Lost This Month", current.churn_count)
            with col3:
                st.metric("Starting Members", current.starting_members)
            with col4:
                change = churn_result.churn_change
                st.metric("Churn Change", f"{change:+.2f}%" if change is not None else "N/A",
                          help="vs previous month")

            st.caption(
                f"Churn Rate = (Members Lost / Starting Members) × 100 = "
                f"({current.expired_members} ÷ {current.starting_members or 1}) × 100 = {current.churn_rate}%"
            )

            tabs = st.tabs(["📊 Monthly Trends", "🔄 New vs Expired", "🏢 Studio-wise", "📅 Current Month"])

            with tabs[0]:
                fig = create_full_overview_chart(churn_summary)
                st.plotly_chart(fig, use_container_width=True)
                st.dataframe(churn_summary, use_container_width=True)
                st.download_button("Download Churn Summary (CSV)", data=churn_summary.to_csv(index=False).encode('utf-8'), file_name="churn_summary.csv")

            with tabs[1]:
                fig = create_new_expired_chart(churn_summary)
                st.plotly_chart(fig, use_container_width=True)

            with tabs[2]:
                if studio_summary.empty:
                    st.write("No studio locations in the selected data.")
                else:
                    fig = create_studio_chart(studio_summary)
                    st.plotly_chart(fig, use_container_width=True)
                    st.dataframe(studio_summary, use_container_width=True)
                    st.download_button("Download Studio Breakdown (CSV)", data=studio_summary.to_csv(index=False).encode('utf-8'), file_name="studio_breakdown.csv")

            with tabs[3]:
                col1, col2 = st.columns(2)
                with col1:
                    st.write(f"**Expired This Month ({len(expiring['expired'])})**")
                    st.dataframe(member_table(expiring['expired']), use_container_width=True)
                with col2:
                    st.write(f"**Expiring This Month ({len(expiring['active'])})**")
                    st.dataframe(member_table(expiring['active']), use_container_width=True)

            st.subheader("📜 Analytical Raw Data")
            with st.expander("📄 Filtered memberships"):
                raw_df = records_to_frame(analyzer.get_records())
                st.dataframe(raw_df, use_container_width=True)
                st.download_button("Download Memberships (CSV)", data=raw_df.to_csv(index=False).encode('utf-8'), file_name="memberships.csv")

        except Exception as e:
            st.error(f"❌ Error during analysis: {str(e)}")
            st.exception(e)


def member_table(records) -> pd.DataFrame:
    df = records_to_frame(records)
    df['name'] = (df['first_name'] + ' ' + df['last_name']).str.strip()
    return df[['member_id', 'name', 'email', 'membership_name', 'end_date', 'status', 'sessions_left', 'location']]


def create_full_overview_chart(summary_df: pd.DataFrame) -> go.Figure:
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    x = summary_df["Month"]
    fig.add_trace(go.Scatter(name="Starting Members", x=x, y=summary_df["Starting_Members"], mode="lines+markers", hovertemplate="Month: %{x}<br>Starting Members: %{y:.0f}<extra></extra>"), secondary_y=False)
    fig.add_trace(go.Scatter(name="Ending Members", x=x, y=summary_df["Ending_Members"], mode="lines+markers"), secondary_y=False)
    churn_rate = summary_df["Churn_Rate"].astype(float)
    fig.add_trace(go.Scatter(name="Monthly Churn Rate", x=x, y=churn_rate, mode="lines+markers", hovertemplate="Month: %{x}<br>Churn Rate: %{y:.2f}%<extra></extra>"), secondary_y=True)
    fig.update_layout(title="Month-on-Month Membership & Churn Rate", height=500)
    fig.update_yaxes(title_text="Members", secondary_y=False)
    fig.update_yaxes(title_text="Churn Rate (%)", secondary_y=True)
    return fig


def create_new_expired_chart(summary_df: pd.DataFrame) -> go.Figure:
    fig = go.Figure()
    x = summary_df["Month"]
    fig.add_bar(name="New Members", x=x, y=summary_df["New_Members"], marker_color='#00cc96')
    fig.add_bar(name="Expired Members", x=x, y=summary_df["Expired_Members"], marker_color='#ef553b')
    fig.update_layout(barmode="group", title="Monthly Membership Growth: New vs Expired", yaxis_title="Members", height=400)
    return fig


def create_studio_chart(studio_df: pd.DataFrame) -> go.Figure:
    tier_colors = {"Excellent": "#00cc96", "Good": "#fecb52", "Needs Attention": "#ef553b"}
    fig = go.Figure()
    fig.add_bar(
        x=studio_df["Location"],
        y=studio_df["Churn_Rate"],
        marker_color=[tier_colors[tier] for tier in studio_df["Performance"]],
        text=studio_df["Performance"],
        hovertemplate="Studio: %{x}<br>Churn Rate: %{y:.2f}%<extra></extra>",
    )
    fig.update_layout(title="Current Month Churn Rate by Studio", yaxis_title="Churn Rate (%)", height=400)
    return fig


if __name__ == "__main__":
    main()
