import logging

from logging_config import setup_logging
from write_bench import render_bench_page, write_bench_page


def test_page_targets_server_url():
    page = render_bench_page("http://lab.local:9000/")
    assert "const SERVER_URL = 'http://lab.local:9000';" in page
    assert "__SERVER_URL__" not in page


def test_page_calls_canvas_endpoints():
    page = render_bench_page()
    for path in ("/canvas/initialize", "/canvas/items", "/canvas/reset", "/canvas/clear", "/canvas/check", "/chat"):
        assert path in page
    # Check stays disabled while a judgement is pending or the bench is empty
    assert "state.state === 'EVALUATING' || state.items.length === 0" in page


def test_page_shows_procedure_and_image_lab():
    page = render_bench_page()
    for field in ("experiment.objective", "experiment.steps", "experiment.safety", "experiment.errors"):
        assert field in page
    assert "/images/edit" in page
    assert 'id="imageFile"' in page


def test_write_bench_page(tmp_path):
    target = tmp_path / "bench.html"
    write_bench_page(str(target), "http://example.test")
    assert "http://example.test" in target.read_text(encoding="utf-8")


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "lab.log"
    setup_logging(logging.DEBUG, str(log_file), names=("lab_test_logger",))
    setup_logging(logging.DEBUG, str(log_file), names=("lab_test_logger",))

    logger = logging.getLogger("lab_test_logger")
    assert len(logger.handlers) == 2
    logger.info("bench ready")
    for handler in logger.handlers:
        handler.flush()
    assert "lab_test_logger - INFO - bench ready" in log_file.read_text(encoding="utf-8")
