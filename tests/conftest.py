import os
import tempfile

import pytest

# main.py builds a module-level app on import; keep its archive out of the repo.
os.environ.setdefault("ARCHIVE_DIR", tempfile.mkdtemp(prefix="agricare-test-"))

from fastapi.testclient import TestClient  # noqa: E402

from main import create_app  # noqa: E402
from tests.fakes import FakeOpenAIClient, make_image_bytes  # noqa: E402
from utils.storage_init import StorageConfig  # noqa: E402


@pytest.fixture
def storage(tmp_path):
    config = StorageConfig(root=tmp_path / "archive")
    config.ensure_directories()
    return config


@pytest.fixture
def fake_openai():
    return FakeOpenAIClient(text="{}")


@pytest.fixture
def client(storage, fake_openai):
    app = create_app(storage=storage, openai_client=fake_openai)
    return TestClient(app)


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG", mode="RGBA")
