import pytest

from dsu.errors import ConfigSyncError, HelperError
from dsu.external import GitConfigSync, TimezoneHelper, WeatherSetup


def test_timezone_helper_runs_script(tmp_path):
    (tmp_path / "tz.sh").write_text('echo "$1" > applied-tz\n')
    helper = TimezoneHelper(tmp_path)

    assert helper.available()
    helper.set("Europe/Berlin")
    assert (tmp_path / "applied-tz").read_text() == "Europe/Berlin\n"


def test_weather_setup_missing_script(tmp_path):
    assert WeatherSetup(tmp_path).available() is False


def test_weather_setup_passes_setup_argument(tmp_path):
    (tmp_path / "weather.sh").write_text('echo "$1" > weather-called\n')
    WeatherSetup(tmp_path).setup()
    assert (tmp_path / "weather-called").read_text() == "setup\n"


def test_sync_outside_a_repository_fails(tmp_path):
    with pytest.raises(ConfigSyncError):
        GitConfigSync(tmp_path).sync()


def test_failing_timezone_script_is_a_helper_error(tmp_path):
    (tmp_path / "tz.sh").write_text("exit 3\n")
    with pytest.raises(HelperError) as exc:
        TimezoneHelper(tmp_path).set("Europe/Berlin")
    assert "tz.sh Europe/Berlin failed" in str(exc.value)
    assert exc.value.remediation
