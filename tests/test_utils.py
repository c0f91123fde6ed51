import json
import logging
import logging.handlers
from decimal import Decimal

from payledger.core.config import settings
from payledger.core.utils import atomic_write_json, is_numeric, round2, setup_logging, to_money

def test_setup_logging_idempotent(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOG_PATH", str(tmp_path / "logs"))
    logger = logging.getLogger(settings.APP_NAME)
    monkeypatch.setattr(logger, "handlers", [])
    logger1 = setup_logging("tmptest")
    handlers_before = len(logger1.handlers)
    logger2 = setup_logging("tmptest")
    assert handlers_before == len(logger2.handlers)
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger2.handlers)
    assert (tmp_path / "logs").is_dir()
    for h in logger2.handlers:
        h.close()

def test_money_helpers():
    assert to_money(0.1) == Decimal("0.1")
    assert to_money(None) == 0
    assert to_money(" 12.50 ") == Decimal("12.50")
    assert round2("2.675") == Decimal("2.68")
    assert round2(-0.005) == Decimal("-0.01")

def test_is_numeric():
    assert is_numeric(1) and is_numeric(1.5) and is_numeric("3") and is_numeric(Decimal("2"))
    assert not is_numeric(True) and not is_numeric(None) and not is_numeric("x") and not is_numeric(" ")

def test_atomic_write_json(tmp_path):
    path = tmp_path / "out" / "data.json"
    atomic_write_json(str(path), {"amount": Decimal("1.10")})
    assert json.loads(path.read_text()) == {"amount": "1.10"}
    assert not path.with_suffix(".tmp").exists()
