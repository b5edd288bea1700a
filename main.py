import argparse

from config.config import Config
from src_parallax.parallax_revive import ParallaxRevive
from utils.logger_config import LoggerConfig, get_logger


def load_config(config_path: str) -> Config:
    """
    Load configuration from a JSON file.

    Args:
        config_path (str): Path to the configuration JSON file.

    Returns:
        Config: Loaded configuration object.
    """
    return Config(config_path)


def process_parallax(config: Config) -> None:
    """
    Run the parallax pipeline using the provided configuration.

    Args:
        config (Config): Configuration object containing processing parameters.
    """
    reviver = ParallaxRevive(config)
    reviver.create_depth()
    reviver.create_preview_stills()
    if config.export_video:
        reviver.create_video()
        reviver.create_report()


def main() -> None:
    """
    Main function to execute the parallax pipeline.
    """
    parser = argparse.ArgumentParser(description="Depth-banded parallax clip from a single photo")
    parser.add_argument("--config", default="config/config_parallax.json", help="Path to the JSON config")
    parser.add_argument("--image", default=None, help="Override input_image from the config")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.image:
        config.config_data["input_image"] = args.image
    LoggerConfig.configure_from_settings(config.log_level, config.log_file)

    logger = get_logger("main")
    logger.info(f"Configuration: {config.get_summary()}")
    process_parallax(config)
    logger.info("Processing completed successfully")


if __name__ == "__main__":
    main()
