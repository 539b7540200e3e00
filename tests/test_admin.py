"""
Stats Admin Tests

Test suite for filtering, quantile aggregation, text/JSON/Prometheus
rendering, the recent lookups controller and the stats handler.
"""

import io
import json
import math
import re
from http import HTTPStatus
from unittest.mock import Mock

import pytest


def make_histogram(name, *windows, quantiles=(0.0, 0.5, 1.0)):
    """Build a histogram by recording and merging one list of samples per window."""
    from statsadmin.stats.store import ParentHistogram

    histogram = ParentHistogram(name, quantiles)
    for samples in windows:
        for value in samples:
            histogram.record_value(value)
        histogram.merge()
    return histogram


# =============================================================================
# Filter Tests
# =============================================================================

class TestMetricFilter:
    """Test used-only and name pattern filtering."""

    def test_no_filters_pass(self):
        """A metric with no filters set always passes."""
        from statsadmin.admin.filters import should_show_metric
        from statsadmin.stats.store import Counter

        assert should_show_metric(Counter("unused"), False, None)

    def test_used_only(self):
        """Unused metrics are dropped when used_only is set."""
        from statsadmin.admin.filters import should_show_metric
        from statsadmin.stats.store import Counter

        counter = Counter("requests")
        assert not should_show_metric(counter, True, None)

        counter.inc()
        assert should_show_metric(counter, True, None)

    def test_pattern_is_search(self):
        """The pattern may match anywhere in the name."""
        from statsadmin.admin.filters import should_show_metric
        from statsadmin.stats.store import Counter

        counter = Counter("cluster.upstream_rq")
        assert should_show_metric(counter, False, re.compile("upstream"))
        assert not should_show_metric(counter, False, re.compile("^upstream"))

    def test_filters_are_conjunctive(self):
        """Both filters must pass."""
        from statsadmin.admin.filters import should_show_metric
        from statsadmin.stats.store import Counter

        counter = Counter("cluster.upstream_rq")
        assert not should_show_metric(counter, True, re.compile("upstream"))

        counter.inc()
        assert should_show_metric(counter, True, re.compile("upstream"))
        assert not should_show_metric(counter, True, re.compile("downstream"))

    def test_compile_filter(self):
        """Missing pattern means no filter; bad syntax raises."""
        from statsadmin.admin.filters import InvalidFilterError, compile_filter

        assert compile_filter(None) is None
        assert compile_filter("a.b").search("xa_by")

        with pytest.raises(InvalidFilterError) as exc_info:
            compile_filter("(")
        assert exc_info.value.pattern == "("

    def test_filter_metrics_keeps_order(self):
        """Survivors keep their input order."""
        from statsadmin.admin.filters import filter_metrics
        from statsadmin.stats.store import Counter

        metrics = [Counter("b.x"), Counter("a.y"), Counter("c.x")]
        kept = filter_metrics(metrics, False, re.compile(r"\.x$"))
        assert [m.name for m in kept] == ["b.x", "c.x"]


# =============================================================================
# Quantile Aggregation Tests
# =============================================================================

class TestQuantileAggregator:
    """Test interval/cumulative alignment and absent values."""

    def test_aligned_points(self):
        """One point per level with both windows."""
        from statsadmin.admin.quantiles import QuantilePoint, aggregate

        histogram = make_histogram("h", [1, 3])
        assert aggregate(histogram) == [
            QuantilePoint(0.0, 1.0, 1.0),
            QuantilePoint(0.5, 2.0, 2.0),
            QuantilePoint(1.0, 3.0, 3.0),
        ]

    def test_no_samples_is_absent(self):
        """NaN becomes None; no NaN reaches the caller."""
        from statsadmin.admin.quantiles import aggregate

        histogram = make_histogram("h", [1, 3], [])
        points = aggregate(histogram)

        assert all(p.interval is None for p in points)
        assert [p.cumulative for p in points] == [1.0, 2.0, 3.0]

    def test_never_observed(self):
        """A histogram with no samples at all is absent in both windows."""
        from statsadmin.admin.quantiles import aggregate
        from statsadmin.stats.store import ParentHistogram

        points = aggregate(ParentHistogram("h", (0.5,)))
        assert points[0].interval is None
        assert points[0].cumulative is None

    def test_pure(self):
        """Aggregating twice gives the same result and leaves the histogram alone."""
        from statsadmin.admin.quantiles import aggregate

        histogram = make_histogram("h", [1, 3], [])
        before = list(histogram.interval_statistics.computed_quantiles)

        assert aggregate(histogram) == aggregate(histogram)
        after = histogram.interval_statistics.computed_quantiles
        assert all(math.isnan(a) and math.isnan(b) for a, b in zip(before, after))

    def test_supported_percentiles(self):
        """Levels become percentages without float noise."""
        from statsadmin.admin.quantiles import supported_percentiles
        from statsadmin.stats.types import SUPPORTED_QUANTILES

        assert supported_percentiles(SUPPORTED_QUANTILES) == [
            0.0, 25.0, 50.0, 75.0, 90.0, 95.0, 99.0, 99.5, 99.9, 100.0
        ]


# =============================================================================
# Text Renderer Tests
# =============================================================================

class TestTextRenderer:
    """Test plain text output."""

    def test_numeric_stats_sorted(self):
        """Counters and gauges render in ascending name order."""
        from statsadmin.admin.text_renderer import render_text

        body = render_text({}, {"b": 3, "c": 7, "a": 5}, [])
        assert body == "a: 5\nb: 3\nc: 7\n"

    def test_text_readouts_first_and_escaped(self):
        """Text readouts come first, quoted and HTML-escaped."""
        from statsadmin.admin.text_renderer import render_text

        body = render_text({"z.version": '<1.0> & "beta"', "a.mode": "live"}, {"m": 1}, [])
        assert body == (
            'a.mode: "live"\n'
            'z.version: "&lt;1.0&gt; &amp; &quot;beta&quot;"\n'
            "m: 1\n"
        )

    def test_histograms_last_with_duplicates(self):
        """Histograms render last, sorted, duplicate names kept."""
        from statsadmin.admin.text_renderer import render_text
        from statsadmin.stats.store import ParentHistogram

        histograms = [
            ParentHistogram("z.hist"),
            ParentHistogram("dup"),
            ParentHistogram("dup"),
        ]
        body = render_text({}, {"a": 1}, histograms)
        assert body == (
            "a: 1\n"
            "dup: No recorded values\n"
            "dup: No recorded values\n"
            "z.hist: No recorded values\n"
        )

    def test_histogram_summary(self):
        """Histogram lines carry the quantile summary."""
        from statsadmin.admin.text_renderer import render_text

        body = render_text({}, {}, [make_histogram("h", [1, 3])])
        assert body == "h: P0(1,1) P50(2,2) P100(3,3)\n"

    def test_empty(self):
        """Nothing to render gives an empty body."""
        from statsadmin.admin.text_renderer import render_text

        assert render_text({}, {}, []) == ""


# =============================================================================
# JSON Renderer Tests
# =============================================================================

class TestJsonRenderer:
    """Test the JSON document shape."""

    def test_empty_document(self):
        """No surviving metrics gives exactly an empty stats array."""
        from statsadmin.admin.json_renderer import render_json

        assert render_json({}, {}, []) == '{"stats": []}'

    def test_section_order(self):
        """Text readouts, then numeric stats, each sorted by name."""
        from statsadmin.admin.json_renderer import render_json

        document = json.loads(render_json({"t2": "y", "t1": "x"}, {"b": 2, "a": 1}, []))
        assert document == {
            "stats": [
                {"name": "t1", "value": "x"},
                {"name": "t2", "value": "y"},
                {"name": "a", "value": 1},
                {"name": "b", "value": 2},
            ]
        }

    def test_text_readout_verbatim(self):
        """Text readout values are not HTML-escaped in JSON."""
        from statsadmin.admin.json_renderer import render_json

        document = json.loads(render_json({"t": "<b>"}, {}, []))
        assert document["stats"][0]["value"] == "<b>"

    def test_histograms_object(self):
        """Histograms appear once, after everything else."""
        from statsadmin.admin.json_renderer import render_json

        document = json.loads(render_json({}, {"a": 1}, [make_histogram("h", [1, 3])]))
        stats = document["stats"]

        assert stats[0] == {"name": "a", "value": 1}
        assert stats[1] == {
            "histograms": {
                "supported_quantiles": [0.0, 50.0, 100.0],
                "computed_quantiles": [
                    {
                        "name": "h",
                        "values": [
                            {"interval": 1.0, "cumulative": 1.0},
                            {"interval": 2.0, "cumulative": 2.0},
                            {"interval": 3.0, "cumulative": 3.0},
                        ],
                    }
                ],
            }
        }

    def test_histograms_keep_snapshot_order(self):
        """computed_quantiles is not sorted by name."""
        from statsadmin.admin.json_renderer import render_json

        histograms = [make_histogram("z", [1]), make_histogram("a", [1])]
        document = json.loads(render_json({}, {}, histograms))

        names = [h["name"] for h in document["stats"][0]["histograms"]["computed_quantiles"]]
        assert names == ["z", "a"]

    def test_absent_interval_is_null(self):
        """An empty interval renders null while cumulative stays numeric."""
        from statsadmin.admin.json_renderer import render_json

        body = render_json({}, {}, [make_histogram("h", [2, 4], [])])
        assert "NaN" not in body

        values = json.loads(body)["stats"][0]["histograms"]["computed_quantiles"][0]["values"]
        assert [v["interval"] for v in values] == [None, None, None]
        assert [v["cumulative"] for v in values] == [2.0, 3.0, 4.0]

    def test_pretty_print(self):
        """Pretty printing indents but keeps the same document."""
        from statsadmin.admin.json_renderer import render_json

        pretty = render_json({}, {"a": 1}, [], pretty_print=True)
        assert "\n" in pretty
        assert json.loads(pretty) == json.loads(render_json({}, {"a": 1}, []))


# =============================================================================
# Prometheus Tests
# =============================================================================

class TestPrometheus:
    """Test Prometheus exposition output."""

    def test_counters_and_gauges(self):
        """Names are sanitized and prefixed, with TYPE lines."""
        from statsadmin.admin.prometheus import render_prometheus
        from statsadmin.stats.store import Counter, Gauge

        counter = Counter("cluster.upstream_rq")
        counter.inc(3)
        gauge = Gauge("server.live")
        gauge.set(1)

        out = io.StringIO()
        families = render_prometheus([counter], [gauge], [], out)

        assert families == 2
        assert out.getvalue() == (
            "# TYPE envoy_cluster_upstream_rq counter\n"
            "envoy_cluster_upstream_rq 3\n"
            "# TYPE envoy_server_live gauge\n"
            "envoy_server_live 1\n"
        )

    def test_histogram_as_summary(self):
        """Histograms export cumulative quantiles, sum and count."""
        from statsadmin.admin.prometheus import render_prometheus

        out = io.StringIO()
        render_prometheus([], [], [make_histogram("rq.time", [1, 3], [])], out)

        assert out.getvalue() == (
            "# TYPE envoy_rq_time summary\n"
            'envoy_rq_time{quantile="0"} 1.0\n'
            'envoy_rq_time{quantile="0.5"} 2.0\n'
            'envoy_rq_time{quantile="1"} 3.0\n'
            "envoy_rq_time_sum 4.0\n"
            "envoy_rq_time_count 2\n"
        )

    def test_filters_applied(self):
        """The sink honours used_only and the name pattern."""
        from statsadmin.admin.prometheus import render_prometheus
        from statsadmin.stats.store import Counter

        used = Counter("active.a")
        used.inc()
        idle = Counter("idle.b")

        out = io.StringIO()
        render_prometheus([used, idle], [], [], out, used_only=True)
        assert "idle" not in out.getvalue()
        assert "envoy_active_a 1" in out.getvalue()

        out = io.StringIO()
        render_prometheus([used, idle], [], [], out, regex=re.compile("idle"))
        assert "active" not in out.getvalue()

    def test_format_value(self):
        """Special float values use Prometheus spellings."""
        from statsadmin.admin.prometheus import format_value

        assert format_value(7) == "7"
        assert format_value(1.5) == "1.5"
        assert format_value(float("nan")) == "NaN"
        assert format_value(float("inf")) == "+Inf"


# =============================================================================
# Recent Lookups Controller Tests
# =============================================================================

class TestRecentLookupsController:
    """Test enable/disable/clear/query."""

    @pytest.fixture
    def store(self):
        """Create a stats store for testing."""
        from statsadmin.stats.store import StatsStore

        return StatsStore()

    @pytest.fixture
    def controller(self, store):
        """Create a controller over the store's symbol table."""
        from statsadmin.admin.recent_lookups import RecentLookupsController

        return RecentLookupsController(store.symbol_table)

    def test_not_enabled(self, controller):
        """A disabled tracker reports "not enabled" with a zero total."""
        from statsadmin.admin.recent_lookups import NOT_ENABLED_MESSAGE, render_report

        report = controller.query()
        assert not report.enabled
        assert report.rows == []
        assert report.total == 0
        assert render_report(report) == NOT_ENABLED_MESSAGE + "\ntotal: 0\n"

    def test_enable_then_lookup(self, store, controller):
        """After enabling, a lookup of foo shows up once."""
        from statsadmin.admin.recent_lookups import render_report

        controller.enable()
        store.counter("foo")

        report = controller.query()
        assert report.enabled
        assert report.rows == [("foo", 1)]
        assert report.total == 1
        assert render_report(report) == "   Count Lookup\n       1 foo\n\ntotal: 1\n"

    def test_enabled_but_empty(self, controller):
        """Enabled with no lookups is distinct from not enabled."""
        from statsadmin.admin.recent_lookups import render_report

        controller.enable()
        report = controller.query()
        assert report.enabled
        assert render_report(report) == "   Count Lookup\n\ntotal: 0\n"

    def test_rearm_capacity(self, controller):
        """Enable, disable, enable returns to the default capacity."""
        from statsadmin.admin.recent_lookups import DEFAULT_RECENT_LOOKUPS_CAPACITY

        controller.enable()
        controller.enable()
        assert controller.capacity == DEFAULT_RECENT_LOOKUPS_CAPACITY

        controller.disable()
        controller.disable()
        assert controller.capacity == 0
        assert not controller.enabled

        controller.enable()
        assert controller.capacity == DEFAULT_RECENT_LOOKUPS_CAPACITY

    def test_disable_discards_history(self, store, controller):
        """Disabling drops tracked names."""
        controller.enable()
        store.counter("foo")
        controller.disable()

        report = controller.query()
        assert report.rows == []
        assert not report.enabled

    def test_clear_keeps_state(self, store, controller):
        """Clear zeroes counts without toggling tracking."""
        controller.enable()
        store.counter("foo")
        store.counter("foo")

        controller.clear()
        report = controller.query()
        assert report.rows == []
        assert report.total == 0
        assert controller.enabled

    def test_custom_capacity(self, store):
        """A configured capacity bounds the rows; the total keeps counting."""
        from statsadmin.admin.recent_lookups import RecentLookupsController

        controller = RecentLookupsController(store.symbol_table, capacity=2)
        controller.enable()
        for name in ["a", "b", "c"]:
            store.counter(name)

        report = controller.query()
        assert report.rows == [("c", 1), ("b", 1)]
        assert report.total == 3

    def test_report_to_dict(self):
        """Reports serialize for JSON consumers."""
        from statsadmin.admin.recent_lookups import RecentLookupsReport

        report = RecentLookupsReport(rows=[("foo", 2)], total=5)
        assert report.to_dict() == {
            "enabled": True,
            "total": 5,
            "lookups": [{"name": "foo", "count": 2}],
        }


# =============================================================================
# Stats Handler Tests
# =============================================================================

class TestFormatSelector:
    """Test format parameter parsing."""

    def test_parse(self):
        """Known names map to formats; anything else is unknown."""
        from statsadmin.admin.handler import ExportFormat, FormatSelector

        assert FormatSelector.parse(None).format == ExportFormat.PLAIN
        assert FormatSelector.parse("json").format == ExportFormat.JSON
        assert FormatSelector.parse("prometheus").format == ExportFormat.PROMETHEUS

        unknown = FormatSelector.parse("xml")
        assert unknown.format == ExportFormat.UNKNOWN
        assert unknown.raw == "xml"
        assert FormatSelector.parse("").format == ExportFormat.UNKNOWN


class TestStatsHandler:
    """Test the export dispatcher and administrative actions."""

    @pytest.fixture
    def store(self):
        """Create a store with used and idle metrics of every kind."""
        from statsadmin.stats.store import StatsStore

        store = StatsStore(supported_quantiles=(0.0, 0.5, 1.0))
        store.counter("active.counter").inc(2)
        store.counter("idle.counter")
        store.gauge("active.gauge").set(4)
        store.gauge("idle.gauge")
        store.text_readout("active.readout").set("on")
        store.text_readout("idle.readout")
        store.histogram("active.histogram").record_value(1)
        store.histogram("idle.histogram")
        store.merge_histograms()
        return store

    @pytest.fixture
    def handler(self, store):
        """Create a stats handler over the store."""
        from statsadmin.admin.handler import StatsHandler

        return StatsHandler(store)

    def test_plain_scenario(self):
        """Two counters and a gauge render as plain text."""
        from statsadmin.admin.handler import StatsHandler
        from statsadmin.stats.store import Counter, Gauge
        from statsadmin.stats.types import ImportMode, MetricsSnapshot

        a, b = Counter("a"), Counter("b")
        a.inc(5)
        b.inc(3)
        c = Gauge("c", ImportMode.ACCUMULATE)
        c.set(7)

        handler = StatsHandler(MetricsSnapshot(counter_list=[a, b], gauge_list=[c]))
        response = handler.handle_stats()

        assert response.status == HTTPStatus.OK
        assert response.body == "a: 5\nb: 3\nc: 7\n"
        assert response.content_type.startswith("text/plain")

    @pytest.mark.parametrize("format_name", [None, "json", "prometheus"])
    def test_used_only_every_format(self, handler, format_name):
        """used_only drops idle metrics of all four kinds in every format."""
        response = handler.handle_stats(used_only=True, format=format_name)

        assert response.status == HTTPStatus.OK
        assert "idle" not in response.body
        assert "active" in response.body

    def test_json_export(self, handler):
        """JSON export carries every section."""
        response = handler.handle_stats(used_only=True, format="json")
        assert response.content_type == "application/json"

        stats = json.loads(response.body)["stats"]
        assert stats[0] == {"name": "active.readout", "value": "on"}
        assert stats[1] == {"name": "active.counter", "value": 2}
        assert stats[2] == {"name": "active.gauge", "value": 4}
        assert stats[3]["histograms"]["computed_quantiles"][0]["name"] == "active.histogram"

    def test_numeric_order_matches_between_formats(self, handler):
        """Plain and JSON list the same numeric stats in the same order."""
        plain = handler.handle_stats(filter_pattern="counter|gauge").body
        document = json.loads(handler.handle_stats(filter_pattern="counter|gauge", format="json").body)

        plain_pairs = [tuple(line.split(": ")) for line in plain.splitlines()]
        json_pairs = [(s["name"], str(s["value"])) for s in document["stats"]]
        assert plain_pairs == json_pairs
        assert [name for name, _ in plain_pairs] == sorted(name for name, _ in plain_pairs)

    def test_filter_pattern(self, handler):
        """Only matching names are exported."""
        response = handler.handle_stats(filter_pattern=r"gauge$")
        assert response.body == "active.gauge: 4\nidle.gauge: 0\n"

    def test_no_histograms_after_filter(self, handler):
        """The histograms object is omitted when none survive."""
        response = handler.handle_stats(filter_pattern="nothing-matches", format="json")
        assert response.body == '{"stats": []}'

    def test_invalid_regex(self):
        """A bad pattern fails the request before any metric is read."""
        from statsadmin.admin.handler import StatsHandler
        from statsadmin.stats.types import StatsSource

        source = Mock(spec=StatsSource)
        handler = StatsHandler(source)

        for format_name in [None, "json", "prometheus"]:
            response = handler.handle_stats(filter_pattern="(", format=format_name)
            assert response.status == HTTPStatus.BAD_REQUEST
            assert response.body.startswith('Invalid regex: "')

        source.counters.assert_not_called()
        source.gauges.assert_not_called()
        source.text_readouts.assert_not_called()
        source.histograms.assert_not_called()

    def test_unknown_format(self, handler):
        """An unknown format returns usage and not found."""
        from statsadmin.admin.handler import USAGE_MESSAGE

        response = handler.handle_stats(format="xml")
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == USAGE_MESSAGE

    def test_prometheus_endpoint(self, handler):
        """The dedicated Prometheus export matches format=prometheus."""
        response = handler.handle_prometheus_stats(used_only=True)
        assert response.content_type.startswith("text/plain; version=0.0.4")
        assert response.body == handler.handle_stats(used_only=True, format="prometheus").body
        assert "# TYPE envoy_active_counter counter" in response.body

    def test_counter_wins_name_clash(self):
        """A counter and gauge with one name keep the counter's value."""
        from statsadmin.admin.handler import collect_stats
        from statsadmin.stats.store import Counter, Gauge
        from statsadmin.stats.types import MetricsSnapshot

        counter = Counter("x")
        counter.inc(1)
        gauge = Gauge("x")
        gauge.set(2)

        stats = collect_stats(MetricsSnapshot(counter_list=[counter], gauge_list=[gauge]), False, None)
        assert stats.all_stats == {"x": 1}

    def test_uninitialized_gauge_asserts(self):
        """A gauge without an import mode is a fatal precondition failure."""
        from statsadmin.admin.handler import StatsHandler
        from statsadmin.stats.store import Gauge
        from statsadmin.stats.types import ImportMode, MetricsSnapshot

        handler = StatsHandler(MetricsSnapshot(gauge_list=[Gauge("g", ImportMode.UNINITIALIZED)]))
        with pytest.raises(AssertionError):
            handler.handle_stats()

    def test_reset_counters(self, store, handler):
        """Reset zeroes counters and clears recent lookups."""
        handler.recent_lookups_enable()
        store.counter("active.counter")

        response = handler.reset_counters()
        assert response.body == "OK\n"
        assert all(c.value == 0 for c in store.counters())
        assert handler.recent_lookups.query().total == 0
        assert handler.recent_lookups.enabled

    def test_recent_lookup_actions(self, store, handler):
        """Administrative lookup actions return OK and change state."""
        assert handler.recent_lookups_enable().body == "OK\n"
        store.counter("foo")
        assert "       1 foo\n" in handler.recent_lookups_report().body

        assert handler.recent_lookups_clear().body == "OK\n"
        assert handler.recent_lookups_report().body == "   Count Lookup\n\ntotal: 0\n"

        assert handler.recent_lookups_disable().body == "OK\n"
        assert handler.recent_lookups_report().body.startswith("Lookup tracking is not enabled.")
