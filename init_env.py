from django.core.management.utils import get_random_secret_key


def generate_django_secret_key():
    return get_random_secret_key()


def main():
    django_key = generate_django_secret_key()

    print(f"DJANGO_SECRET_KEY={django_key}")
    print("CHROMEDRIVER_PATH=/usr/local/bin/chromedriver")
    print("BOT_RECORDING_FILE_PATH=/tmp/recording.wav")
    print("BOT_DEBUG_SCREENSHOT_DIRECTORY=/tmp")
    print("BOT_AUDIO_SAMPLE_RATE=48000")
    print("LOG_LEVEL=INFO")


if __name__ == "__main__":
    main()
