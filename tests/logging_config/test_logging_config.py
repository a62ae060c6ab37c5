import pytest
import logging
from modules.logging_config import ColoredFormatter, LoggingConfigurator

@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)

def test_logger_creation(tmp_path):
    config = {'logging': {'level': 'DEBUG', 'log_to_file': True, 'log_dir': str(tmp_path / "logs")}}
    lc = LoggingConfigurator(config)
    lc.setup()

    logger = lc.get_logger('test_mod')
    logger.info("Test message")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = tmp_path / "logs" / LoggingConfigurator.LOG_FILE
    assert log_file.exists()
    content = log_file.read_text(encoding='utf-8')
    assert "Test message" in content
    assert "[test_mod]" in content
    # The file never receives colour codes
    assert "\x1b[" not in content

def test_setup_replaces_handlers(tmp_path):
    config = {'logging': {'log_dir': str(tmp_path), 'log_to_console': True}}
    LoggingConfigurator(config).setup()
    LoggingConfigurator(config).setup()

    assert len(logging.getLogger().handlers) == 2

def test_file_logging_disabled(tmp_path):
    config = {'logging': {'level': 'warning', 'log_to_file': False, 'log_dir': str(tmp_path / "none")}}
    LoggingConfigurator(config).setup()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert not (tmp_path / "none").exists()

def test_colored_formatter_leaves_record_untouched():
    record = logging.LogRecord('lab', logging.ERROR, __file__, 1, "boom", None, None)
    output = ColoredFormatter('%(levelname)s %(message)s').format(record)

    assert "boom" in output
    assert ColoredFormatter.COLORS['ERROR'] in output
    assert record.levelname == 'ERROR'
