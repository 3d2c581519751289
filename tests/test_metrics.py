"""Tests for the refresh metrics collector."""

from agentbuilders.monitoring import MetricsCollector


def test_job_lifecycle(tmp_path):
    collector = MetricsCollector(tmp_path / ".metrics.json")
    collector.start_job("github", total=3)
    collector.start_framework("github", "LangChain")
    assert collector.get_metrics().jobs["github"].current_framework == "LangChain"

    collector.complete_framework("github", "LangChain", True, value=90000)
    collector.complete_framework("github", "CrewAI", False, message="boom")
    collector.record_error("github", "CrewAI", "UpstreamError", "boom")
    collector.finish_job("github")

    stats = collector.get_metrics().jobs["github"]
    assert not stats.is_running
    assert stats.total_runs == 1
    assert stats.last_total == 3
    assert (stats.last_succeeded, stats.last_failed) == (1, 1)
    assert stats.last_duration_seconds is not None
    assert collector.last_finished("github") == stats.last_finished
    assert collector.last_finished("npm") is None


def test_persisted_across_instances(tmp_path):
    path = tmp_path / ".metrics.json"
    first = MetricsCollector(path)
    first.start_job("pypi", total=1)
    first.complete_framework("pypi", "CrewAI", True, value=800)
    first.finish_job("pypi")
    first.update_github_rate_limit(4000, 5000)

    reloaded = MetricsCollector(path).get_metrics()
    assert reloaded.jobs["pypi"].total_runs == 1
    assert reloaded.activity_log[-1].framework == "CrewAI"
    assert reloaded.activity_log[-1].value == 800


def test_error_ring_buffer_is_bounded():
    collector = MetricsCollector(None)
    for i in range(30):
        collector.record_error("npm", f"fw_{i}", "UpstreamError", "down")
    errors = collector.get_metrics().recent_errors
    assert len(errors) == 20
    assert errors[0].framework == "fw_10"


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / ".metrics.json"
    path.write_text("{not json")
    assert MetricsCollector(path).get_metrics().jobs == {}
