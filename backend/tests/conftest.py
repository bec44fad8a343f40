from pathlib import Path
from dotenv import load_dotenv
import pytest

# Load environment variables for tests (before any yardconnect import)
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')

from factories import RecordingEmailSender, setup_db  # noqa: E402


@pytest.fixture
def db():
    session = setup_db()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()
