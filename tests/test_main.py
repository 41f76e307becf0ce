import sys
import os
import io
import logging
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import main
from models import AccountSnapshot
from settings import get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in ("PAYMENTS_DIAGNOSTICS", "PAYMENTS_LOG_LEVEL", "PAYMENTS_AMOUNT_SCALE"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def write_csv(tmp_path, *rows):
    csv_file = tmp_path / "transactions.csv"
    csv_file.write_text("\n".join(("type, client, tx, amount",) + rows))
    return str(csv_file)


class TestFormatting:
    def test_format_decimal(self):
        assert main.format_decimal(Decimal("50")) == "50.0000"
        assert main.format_decimal(Decimal("-30.5")) == "-30.5000"
        assert main.format_decimal(Decimal("1.25"), scale=2) == "1.25"

    def test_write_accounts_sorted(self):
        stream = io.StringIO()
        main.write_accounts({
            2: AccountSnapshot(2, Decimal("1"), Decimal("0"), Decimal("1"), False),
            1: AccountSnapshot(1, Decimal("0"), Decimal("0"), Decimal("0"), True),
        }, stream)

        assert stream.getvalue() == (
            "client,available,held,total,locked\n"
            "1,0.0000,0.0000,0.0000,true\n"
            "2,1.0000,0.0000,1.0000,false\n"
        )


class TestMain:
    ROWS = (
        "deposit, 2, 1, 50.0",
        "deposit, 1, 2, 999.0",
        "withdrawal, 1, 3, 950.0",
        "dispute, 2, 1,",
        "withdrawal, 2, 4, 10.0",
        "chargeback, 9, 99,",
    )

    def test_output(self, tmp_path, capsys):
        assert main.main([write_csv(tmp_path, *self.ROWS)]) == 0

        assert capsys.readouterr().out == (
            "client,available,held,total,locked\n"
            "1,49.0000,0.0000,49.0000,false\n"
            "2,0.0000,50.0000,50.0000,false\n"
        )

    def test_diagnostics_only_touch_stderr(self, tmp_path, capsys, caplog):
        path = write_csv(tmp_path, *self.ROWS)

        main.main([path])
        quiet = capsys.readouterr().out

        with caplog.at_level(logging.WARNING, logger="payments_engine"):
            main.main([path, "--diagnostics"])
        loud = capsys.readouterr().out

        assert loud == quiet
        messages = [record.getMessage() for record in caplog.records]
        assert any("insufficient_funds" in message for message in messages)
        assert any("transaction_not_found" in message for message in messages)

    def test_missing_file(self, tmp_path, capsys):
        assert main.main([str(tmp_path / "nope.csv")]) == 1
        assert capsys.readouterr().out == ""

    def test_usage(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main.main([])
        assert excinfo.value.code == 2

    def test_unknown_log_level_is_usage_error(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main.main([write_csv(tmp_path, *self.ROWS), "--log-level", "foo"])
        assert excinfo.value.code == 2
        assert capsys.readouterr().out == ""

    def test_log_level_case_insensitive(self, tmp_path, capsys):
        assert main.main([write_csv(tmp_path, *self.ROWS), "--log-level", "debug"]) == 0
        assert capsys.readouterr().out.startswith("client,available,held,total,locked\n")

    def test_bad_environment_is_usage_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PAYMENTS_LOG_LEVEL", "loud")
        with pytest.raises(SystemExit) as excinfo:
            main.main([write_csv(tmp_path, *self.ROWS)])
        assert excinfo.value.code == 2
