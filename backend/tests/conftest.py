import os

# Set environment variables before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("VAPID_PUBLIC_KEY", "BLtest-vapid-public-key")

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from rendplus.database import Base
from rendplus import models  # noqa
from rendplus.notifications.credentials import ServiceAccount

@pytest.fixture
def db_session():
    """In-memory SQLite shared across threads so TestClient requests see the same tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    session = Session()
    yield session
    session.rollback()
    session.close()
    Base.metadata.drop_all(engine)

@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)

@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()

@pytest.fixture
def service_account_info(private_key_pem) -> dict:
    return {
        "type": "service_account",
        "project_id": "rendplus-test",
        "client_email": "push-sender@rendplus-test.iam.gserviceaccount.com",
        "private_key": private_key_pem,
        "token_uri": "https://oauth2.googleapis.com/token",
    }

@pytest.fixture
def service_account(service_account_info) -> ServiceAccount:
    return ServiceAccount.from_json(service_account_info)
