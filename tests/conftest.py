import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from httpx import AsyncClient, ASGITransport

from settlement_api.main import app
from settlement_api.models.debt import MaterialDebt


@pytest.fixture
def mock_db():
    """Mock MongoDB database with the settlement collections and a transaction session."""
    mock_db = MagicMock()

    # update_many matches every id it is given unless a test says otherwise
    def _update_many(query, update, **kwargs):
        return MagicMock(modified_count=len(query.get("_id", {}).get("$in", [])))

    for name in ("material_debts", "settlements", "settlement_offsets"):
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.update_many = AsyncMock(side_effect=_update_many)
        collection.find_one = AsyncMock(return_value=None)
        collection.find_one_and_update = AsyncMock(return_value=None)
        setattr(mock_db, name, collection)

    # Mock transaction session
    mock_session = AsyncMock()
    session_ctx = MagicMock(__aenter__=AsyncMock(return_value=mock_session), __aexit__=AsyncMock(return_value=False))
    mock_db.client.start_session = AsyncMock(return_value=session_ctx)
    mock_session.transaction = MagicMock(__aenter__=AsyncMock(), __aexit__=AsyncMock(return_value=False))
    mock_session.start_transaction = MagicMock(return_value=mock_session.transaction)
    mock_db.session = mock_session

    return mock_db


@pytest.fixture
def stub_find():
    """Make collection.find(...).sort(...).to_list(...) return docs."""
    def _stub(collection, docs):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.to_list = AsyncMock(return_value=docs)
        collection.find.return_value = cursor
        return cursor
    return _stub


@pytest.fixture
def make_debt():
    """Build a MaterialDebt with sensible defaults."""
    def _make(debtor, creditor, material, amount, vendor_unpaid=False, **extra):
        fields = {
            "id": str(ObjectId()),
            "debtor_site_id": debtor,
            "creditor_site_id": creditor,
            "material_id": material,
            "material_name": material.title(),
            "unit": "bag",
            "quantity": 1.0,
            "total_amount": amount,
            "vendor_unpaid": vendor_unpaid,
            "site_group_id": "group-1",
        }
        fields.update(extra)
        return MaterialDebt(**fields)
    return _make


@pytest.fixture
def debt_doc():
    """Build a raw material_debts document as stored in MongoDB."""
    def _doc(debtor, creditor, material, amount, vendor_unpaid=False):
        return {
            "_id": ObjectId(),
            "debtor_site_id": debtor,
            "creditor_site_id": creditor,
            "material_id": material,
            "material_name": material.title(),
            "unit": "bag",
            "quantity": 2.0,
            "total_amount": amount,
            "vendor_unpaid": vendor_unpaid,
            "site_group_id": "group-1",
            "settlement_status": "pending",
        }
    return _doc


@pytest_asyncio.fixture
async def client():
    """HTTP client against the app without running the MongoDB lifespan."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
