import asyncio
import json
import logging

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from recording_bots.bot_config import bot_config_from_dict
from recording_bots.bot_controller import BotLifecycleController, WavFileSink
from recording_bots.exceptions import ConfigurationError
from recording_bots.models import Status
from recording_bots.platform_adapter import get_platform_adapter
from recording_bots.web_bot_adapter import WebAutomationSurface

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Joins a meeting, records its audio and exits once the meeting is over"

    def add_arguments(self, parser):
        parser.add_argument("--config", required=True, help="Path to the bot's JSON configuration")
        parser.add_argument("--recording-path", default=None, help="Where to write the WAV recording. Defaults to BOT_RECORDING_FILE_PATH")

    def handle(self, *args, **options):
        try:
            with open(options["config"], "r") as file:
                payload = json.load(file)
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Could not read bot configuration: {e}")

        try:
            config = bot_config_from_dict(payload)
            platform = get_platform_adapter(config.meeting_info.platform)
        except ConfigurationError as e:
            raise CommandError(f"Invalid bot configuration: {e}")

        recording_path = options["recording_path"] or settings.BOT_RECORDING_FILE_PATH
        controller = BotLifecycleController(
            config=config,
            surface=WebAutomationSurface(display_name=config.display_name),
            platform=platform,
            sink=WavFileSink(recording_path, sample_rate=settings.BOT_AUDIO_SAMPLE_RATE),
            debug_screenshot_directory=settings.BOT_DEBUG_SCREENSHOT_DIRECTORY,
        )

        logger.info(f"Starting bot {config.bot_id} for {config.meeting_url}")
        final_status = asyncio.run(controller.run())

        if final_status == Status.FATAL:
            raise CommandError("Bot ended with a fatal error")

        self.stdout.write(self.style.SUCCESS(f"Bot finished with status {final_status}. Recording saved to {recording_path}"))
