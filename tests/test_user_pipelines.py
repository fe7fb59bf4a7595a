"""Tests for user profile pipelines."""

import pytest
from bson import ObjectId
from jose import jwt

from app.auth.models import PasswordVerificationResult, PersistentTokenVerificationResult, UserStatus
from app.database.collections import USERS
from app.registration.pipelines import verify_email_address_pipeline
from app.schemas.user import (
    ChangePasswordModel,
    UpdateEmailAddressModel,
    UpdateNameModel,
    UpdateUserNameModel,
)
from app.user.pipelines import (
    change_password_pipeline,
    get_user_pipeline,
    update_email_address_pipeline,
    update_name_pipeline,
    update_user_name_pipeline,
)
from common.utils.exceptions import (
    EmailAddressNotVerifiedException,
    InsecurePasswordException,
    InvalidPasswordException,
    PasswordChangeTooRecentException,
    UserAlreadyExistsException,
    UserDoesNotExistException,
)

PASSWORD = "Correct-Horse-Battery-9"
NEW_PASSWORD = "Purple-Monkey-Dishwasher-42"


async def user_doc(fake_db, user_id):
    return await fake_db[USERS].find_one({"_id": ObjectId(user_id)})


# ─────────────────────────────────────────────────────────────────
# get_user_pipeline
# ─────────────────────────────────────────────────────────────────


class TestGetUser:
    @pytest.mark.asyncio
    async def test_returns_profile_without_credentials(self, services, create_user):
        user = await create_user()

        profile = await get_user_pipeline(services, str(user["_id"]))

        assert profile["id"] == str(user["_id"])
        assert profile["emailAddress"] == "learner01@flashcards.io"
        assert "passwordHash" not in profile

    @pytest.mark.asyncio
    async def test_unknown_user_raises(self, services):
        with pytest.raises(UserDoesNotExistException):
            await get_user_pipeline(services, str(ObjectId()))


# ─────────────────────────────────────────────────────────────────
# change_password_pipeline
# ─────────────────────────────────────────────────────────────────


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_changes_password_and_issues_tokens(self, services, create_user, clock):
        user = await create_user()
        user_id = str(user["_id"])
        clock.advance(hours=2)

        response = await change_password_pipeline(
            services,
            user_id,
            ChangePasswordModel(currentPassword=PASSWORD, newPassword=NEW_PASSWORD, rememberMe=True),
        )

        assert jwt.get_unverified_claims(response.session_token)["uid"] == user_id
        assert await services.password_store.verify_password(user_id, NEW_PASSWORD) is PasswordVerificationResult.VERIFIED
        verify_result = await services.persistent_token_store.verify_persistent_token(
            user_id, response.persistent_token.client_id, response.persistent_token.client_token
        )
        assert verify_result is PersistentTokenVerificationResult.VERIFIED

    @pytest.mark.asyncio
    async def test_without_remember_me(self, services, create_user, clock):
        user = await create_user()
        clock.advance(hours=2)

        response = await change_password_pipeline(
            services, str(user["_id"]), ChangePasswordModel(currentPassword=PASSWORD, newPassword=NEW_PASSWORD)
        )

        assert response.persistent_token is None

    @pytest.mark.asyncio
    async def test_wrong_current_password_raises(self, services, create_user, clock):
        user = await create_user()
        clock.advance(hours=2)

        with pytest.raises(InvalidPasswordException):
            await change_password_pipeline(
                services,
                str(user["_id"]),
                ChangePasswordModel(currentPassword="Wrong-Horse-Battery-9", newPassword=NEW_PASSWORD),
            )

    @pytest.mark.asyncio
    async def test_change_inside_min_age_raises(self, services, create_user):
        user = await create_user()

        with pytest.raises(PasswordChangeTooRecentException):
            await change_password_pipeline(
                services, str(user["_id"]), ChangePasswordModel(currentPassword=PASSWORD, newPassword=NEW_PASSWORD)
            )

    @pytest.mark.asyncio
    async def test_insecure_new_password_raises(self, services, create_user, clock):
        user = await create_user()
        clock.advance(hours=2)

        with pytest.raises(InsecurePasswordException):
            await change_password_pipeline(
                services, str(user["_id"]), ChangePasswordModel(currentPassword=PASSWORD, newPassword="abc")
            )

    @pytest.mark.asyncio
    async def test_clears_password_change_required(self, services, create_user, clock):
        user = await create_user(user_status=UserStatus.PASSWORD_CHANGE_REQUIRED)
        user_id = str(user["_id"])
        await services.user_status_cache.get_user_status(user_id)
        clock.advance(hours=2)

        await change_password_pipeline(
            services, user_id, ChangePasswordModel(currentPassword=PASSWORD, newPassword=NEW_PASSWORD)
        )

        assert await services.user_status_validator.validate_user_status(user_id) is UserStatus.OK


# ─────────────────────────────────────────────────────────────────
# update_email_address_pipeline
# ─────────────────────────────────────────────────────────────────


class TestUpdateEmailAddress:
    @pytest.mark.asyncio
    async def test_requires_new_verification(self, services, create_user, fake_db):
        user = await create_user()
        user_id = str(user["_id"])

        profile = await update_email_address_pipeline(
            services, user_id, UpdateEmailAddressModel(emailAddress="ada@flashcards.io")
        )

        assert profile["emailAddress"] == "ada@flashcards.io"
        assert profile["userStatus"] == "EmailNotVerified"
        stored = await user_doc(fake_db, user_id)
        assert stored["emailAddress"] == "ada@flashcards.io"
        assert stored["userStatus"] == "EmailNotVerified"
        send = services.email_service.send_verification_email
        send.assert_called_once()
        assert send.call_args[0][0] == "ada@flashcards.io"

    @pytest.mark.asyncio
    async def test_new_address_can_be_verified(self, services, create_user):
        user = await create_user()
        user_id = str(user["_id"])
        await update_email_address_pipeline(services, user_id, UpdateEmailAddressModel(emailAddress="ada@flashcards.io"))
        token_data = services.email_service.send_verification_email.call_args[0][2]
        serialized = services.email_token_serializer.serialize(token_data.pepper, token_data.token, token_data.user_name)

        await verify_email_address_pipeline(services, serialized)

        assert await services.user_status_validator.validate_user_status(user_id) is UserStatus.OK

    @pytest.mark.asyncio
    async def test_keeps_password_change_requirement(self, services, create_user, fake_db):
        user = await create_user(user_status=UserStatus.PASSWORD_CHANGE_REQUIRED)
        user_id = str(user["_id"])

        await update_email_address_pipeline(services, user_id, UpdateEmailAddressModel(emailAddress="ada@flashcards.io"))

        stored = await user_doc(fake_db, user_id)
        assert stored["userStatus"] == UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED.value

    @pytest.mark.asyncio
    async def test_address_of_another_user_raises(self, services, create_user):
        user = await create_user()
        await create_user(user_name="learner02", email_address="learner02@flashcards.io")

        with pytest.raises(UserAlreadyExistsException):
            await update_email_address_pipeline(
                services, str(user["_id"]), UpdateEmailAddressModel(emailAddress="learner02@flashcards.io")
            )

    @pytest.mark.asyncio
    async def test_same_address_is_a_no_op(self, services, create_user, fake_db):
        user = await create_user()

        await update_email_address_pipeline(
            services, str(user["_id"]), UpdateEmailAddressModel(emailAddress="learner01@flashcards.io")
        )

        assert (await user_doc(fake_db, str(user["_id"])))["userStatus"] == "OK"
        services.email_service.send_verification_email.assert_not_called()


# ─────────────────────────────────────────────────────────────────
# Name updates
# ─────────────────────────────────────────────────────────────────


class TestUpdateName:
    @pytest.mark.asyncio
    async def test_updates_name(self, services, create_user):
        user = await create_user()

        profile = await update_name_pipeline(services, str(user["_id"]), UpdateNameModel(name="Ada Lovelace"))

        assert profile["name"] == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_unverified_email_raises(self, services, create_user):
        user = await create_user(user_status=UserStatus.EMAIL_NOT_VERIFIED)

        with pytest.raises(EmailAddressNotVerifiedException):
            await update_name_pipeline(services, str(user["_id"]), UpdateNameModel(name="Ada Lovelace"))


class TestUpdateUserName:
    @pytest.mark.asyncio
    async def test_updates_user_name(self, services, create_user):
        user = await create_user()

        profile = await update_user_name_pipeline(services, str(user["_id"]), UpdateUserNameModel(userName="ada.l"))

        assert profile["userName"] == "ada.l"

    @pytest.mark.asyncio
    async def test_taken_user_name_raises(self, services, create_user):
        user = await create_user()
        await create_user(user_name="learner02", email_address="learner02@flashcards.io")

        with pytest.raises(UserAlreadyExistsException):
            await update_user_name_pipeline(services, str(user["_id"]), UpdateUserNameModel(userName="learner02"))
