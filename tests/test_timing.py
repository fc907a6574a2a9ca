import logging

from testsupport.timing import time_things


def test_time_things_reports_to_sink():
    lines = []

    with time_things("Recreate database", sink=lines.append):
        pass

    assert len(lines) == 1
    assert lines[0].startswith("Recreate database took")
    assert lines[0].endswith("ms")


def test_time_things_reports_average_per_run():
    lines = []

    with time_things("Seed books", sink=lines.append, number_of_runs=4):
        pass

    assert "4 runs" in lines[0]
    assert "per run" in lines[0]


def test_time_things_logs_when_no_sink(caplog):
    with caplog.at_level(logging.INFO, logger="testsupport.timing"):
        with time_things("Clean database"):
            pass

    assert "Clean database took" in caplog.text
