from pathlib import Path

import pytest

from controller.config import ConfigurationError, StationConfig
from imaging.layout_spec import FitPolicy


def test_printer_id_is_required():
    with pytest.raises(ConfigurationError, match="PRINTER_ID"):
        StationConfig.from_env({})


def test_defaults_from_minimal_env():
    config = StationConfig.from_env({"PRINTER_ID": "EPSON_L805"})

    assert config.printer_id == "EPSON_L805"
    assert config.port == 3001
    assert config.media == "A5"
    assert config.two_slot_fit == FitPolicy.PAD
    assert config.delete_source_after_print is True
    assert config.job_history == 200


def test_env_overrides():
    config = StationConfig.from_env(
        {
            "PRINTER_ID": "P1",
            "PORT": "8080",
            "SPOOL_DIR": "/var/spool/prints",
            "OUTPUT_DIR": "/var/out",
            "ICC_PROFILE": "srgb",
            "TWO_SLOT_FIT": "cover",
            "KEEP_SOURCE": "true",
            "LP_EXTRA_ARGS": "-o ColorModel=RGB",
            "LOG_LEVEL": "debug",
            "JOB_HISTORY": "50",
        }
    )

    assert config.port == 8080
    assert config.spool_dir == Path("/var/spool/prints")
    assert config.output_dir == Path("/var/out")
    assert config.icc_profile == "srgb"
    assert config.two_slot_fit == FitPolicy.CROP
    assert config.delete_source_after_print is False
    assert config.extra_lp_args == ("-o", "ColorModel=RGB")
    assert config.log_level == "DEBUG"
    assert config.job_history == 50


def test_bad_port_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="PORT"):
        StationConfig.from_env({"PRINTER_ID": "P1", "PORT": "abc"})


@pytest.mark.parametrize("value", ["lots", "-1"])
def test_bad_job_history_is_a_configuration_error(value):
    with pytest.raises(ConfigurationError, match="JOB_HISTORY"):
        StationConfig.from_env({"PRINTER_ID": "P1", "JOB_HISTORY": value})


def test_bad_fit_policy_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="fit policy"):
        StationConfig.from_env({"PRINTER_ID": "P1", "TWO_SLOT_FIT": "stretch"})


def test_pipeline_config_applies_two_slot_policy(tmp_path):
    config = StationConfig(printer_id="P1", output_dir=tmp_path, two_slot_fit=FitPolicy.CROP)

    pipeline_config = config.to_pipeline_config()

    assert pipeline_config.output_dir == tmp_path
    assert pipeline_config.fit_overrides == {"two4x6": FitPolicy.CROP, "twoA6": FitPolicy.CROP}
    assert pipeline_config.jpeg_quality == 95
    assert pipeline_config.dpi == 300
