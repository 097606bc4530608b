from loguru import logger

from tidal_cli.log import setup_logging


def test_file_sink_receives_debug_messages(tmp_path):
    log_file = tmp_path / "tidal-cli.log"
    setup_logging(verbose=False, log_file=log_file)
    try:
        logger.debug("page 0 returned 2 ids")
    finally:
        logger.remove()

    assert "page 0 returned 2 ids" in log_file.read_text()
