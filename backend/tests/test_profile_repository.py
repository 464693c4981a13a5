import pytest

from portal.exceptions import NotFoundError
from portal.models import User
from portal.schemas.profile import CertificateEntry, EducationEntry, ProfileResponse
from portal.services.normalizer import ProfileChanges, normalize_profile
from portal.services.profile_repository import ProfileRepository


@pytest.fixture
async def user_id(db):
    user = User(email="a@x.com", hashed_password="not-a-real-hash")
    db.add(user)
    await db.commit()
    return user.id


@pytest.fixture
def repository(db):
    return ProfileRepository(db)


async def test_get_missing_profile(repository, user_id):
    with pytest.raises(NotFoundError):
        await repository.get(user_id)


async def test_first_write_creates_profile_with_empty_lists(repository, user_id):
    profile = await repository.upsert(user_id, normalize_profile({"firstName": "Ada"}))

    document = ProfileResponse.model_validate(profile)
    assert document.user_id == user_id
    assert document.first_name == "Ada"
    assert document.skills == []
    assert document.education == []
    assert document.certificates == []
    assert document.updated_at is not None


async def test_upsert_merges_instead_of_replacing(repository, user_id):
    await repository.upsert(user_id, normalize_profile({"bio": "x"}))
    await repository.upsert(user_id, normalize_profile({"firstName": "y"}))

    profile = await repository.get(user_id)
    assert profile.bio == "x"
    assert profile.first_name == "y"


async def test_blank_field_clears_stored_value(repository, user_id):
    await repository.upsert(user_id, normalize_profile({"phone": "+1 555 0100"}))
    await repository.upsert(user_id, normalize_profile({"phone": ""}))

    assert (await repository.get(user_id)).phone is None


async def test_lists_are_replaced_as_a_whole(repository, user_id):
    await repository.upsert(user_id, ProfileChanges(
        skills=["Go"],
        education=[EducationEntry(institution="MIT")],
        certificates=[CertificateEntry(name="AWS"), CertificateEntry(name="GCP")],
    ))
    await repository.upsert(user_id, ProfileChanges(
        education=[EducationEntry(institution="ETH", currently_studying=True)],
        certificates=[CertificateEntry(name="CKA")],
    ))

    profile = await repository.get(user_id)
    assert profile.skills == ["Go"]
    assert [e.institution for e in profile.education] == ["ETH"]
    assert profile.education[0].currently_studying is True
    assert [c.name for c in profile.certificates] == ["CKA"]


async def test_file_references_are_kept_until_replaced(repository, user_id):
    await repository.upsert(user_id, ProfileChanges(
        photo_url="/uploads/photos/one.png",
        resume_url="/uploads/resumes/cv.pdf",
        resume_filename="cv.pdf",
    ))
    await repository.upsert(user_id, normalize_profile({"bio": "updated"}))

    profile = await repository.get(user_id)
    assert profile.photo_url == "/uploads/photos/one.png"
    assert profile.resume_url == "/uploads/resumes/cv.pdf"

    await repository.upsert(user_id, ProfileChanges(photo_url="/uploads/photos/two.png"))
    profile = await repository.get(user_id)
    assert profile.photo_url == "/uploads/photos/two.png"
    assert profile.resume_filename == "cv.pdf"


async def test_delete_is_idempotent(repository, user_id):
    await repository.upsert(user_id, ProfileChanges(
        skills=["Go"], certificates=[CertificateEntry(name="AWS")],
    ))

    await repository.delete(user_id)
    await repository.delete(user_id)

    with pytest.raises(NotFoundError):
        await repository.get(user_id)


async def test_profiles_of_different_accounts_are_independent(repository, user_id, db):
    other = User(email="b@x.com", hashed_password="not-a-real-hash")
    db.add(other)
    await db.commit()

    await repository.upsert(user_id, normalize_profile({"firstName": "Ada"}))
    await repository.upsert(other.id, normalize_profile({"firstName": "Grace"}))
    await repository.delete(other.id)

    assert (await repository.get(user_id)).first_name == "Ada"
