"""测试配置和共享 Fixtures。"""

import pytest

from travelmatch.models import Destination, Coordinates, UserProfile
from travelmatch.services import DocumentStore, InMemoryDocumentStore, RemoteOperationError
from travelmatch.services.store_service import USERS
from travelmatch.services.recommendation_service import DESTINATIONS


# ============================================================================
# Mock Store
# ============================================================================

class FailingStore(InMemoryDocumentStore):
    """测试用 Mock Store。

    设置 should_fail 后，读取、查询和事务都抛出 RemoteOperationError。
    """

    def __init__(self):
        super().__init__()
        self.should_fail = False
        self.call_count = 0

    def _check(self):
        self.call_count += 1
        if self.should_fail:
            raise RemoteOperationError("Mock store failure")

    def get_document(self, collection, doc_id):
        self._check()
        return super().get_document(collection, doc_id)

    def query_documents(self, collection, *predicates, **kwargs):
        self._check()
        return super().query_documents(collection, *predicates, **kwargs)

    def run_transaction(self, fn):
        self._check()
        return super().run_transaction(fn)


# ============================================================================
# Profile Fixtures
# ============================================================================

def make_profile(user_id, interests=(), destinations=(), completed=True, **kwargs) -> UserProfile:
    """创建测试用 UserProfile。"""
    return UserProfile(
        id=user_id,
        display_name=kwargs.pop("display_name", user_id.title()),
        interests=set(interests),
        preferred_destinations=set(destinations),
        profile_completed=completed,
        **kwargs,
    )


@pytest.fixture
def alice() -> UserProfile:
    return make_profile("alice", {"Hiking", "Beaches", "Food"}, {"Asia", "Europe"})


@pytest.fixture
def bob() -> UserProfile:
    return make_profile("bob", {"Hiking", "Food"}, {"Asia"})


@pytest.fixture
def carol() -> UserProfile:
    return make_profile("carol", {"Museums"}, {"Europe"})


@pytest.fixture
def incomplete_user() -> UserProfile:
    """没有兴趣标签的用户（用于边界测试）。"""
    return make_profile("dave", (), (), completed=False)


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def seeded_store(store, alice, bob, carol, incomplete_user) -> InMemoryDocumentStore:
    """写入四个用户的 Store。"""
    for profile in (alice, bob, carol, incomplete_user):
        store.set_document(USERS, profile.id, profile.to_dict())
    return store


@pytest.fixture
def destinations() -> list[Destination]:
    return [
        Destination(id="bali", name="Bali", country="Indonesia", description="Island of the gods",
                    coordinates=Coordinates(-8.34, 115.09), tags=["beaches", "hiking"], rating=4.8, trending=True),
        Destination(id="kyoto", name="Kyoto", country="Japan", description="Temples and gardens",
                    coordinates=Coordinates(35.01, 135.77), tags=["Museums", "food"], rating=4.9),
        Destination(id="faroe", name="Faroe Islands", country="Denmark", description="Remote cliffs",
                    tags=["hidden gem", "hiking"], rating=4.5),
        Destination(id="park", name="City Park", country="USA", description="Green space downtown",
                    coordinates=Coordinates(40.78, -73.97), tags=["local"], rating=3.9, nearby=True),
    ]


@pytest.fixture
def destination_store(store, destinations) -> InMemoryDocumentStore:
    for dest in destinations:
        store.set_document(DESTINATIONS, dest.id, dest.to_dict())
    return store


@pytest.fixture(autouse=True)
def reset_document_store():
    """每个测试后重置全局 Store 单例。"""
    yield
    DocumentStore.reset()
