# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the notification dispatcher, audiences and channels."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import aiosmtplib
import pytest
from sqlalchemy.exc import OperationalError

from livetrain.core.config.settings import SMTPSettings
from livetrain.core.errors import ForbiddenError, NotFoundError, ValidationError
from livetrain.infrastructure.database.connection import DatabaseError
from livetrain.infrastructure.notifications import (
    AllUsers,
    ExplicitAudience,
    NotificationDispatcher,
    RoleAudience,
    build_audience,
    parse_filter,
    resolve_audience,
)
from livetrain.infrastructure.notifications.channels import (
    EmailChannel,
    InAppChannel,
    NotificationPayload,
)
from livetrain.infrastructure.notifications.channels.base import DeliveryStatus
from livetrain.models.common import UserRole


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.expunge = MagicMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def dispatcher(mock_db, settings):
    """Create dispatcher with mock database."""
    return NotificationDispatcher(db=mock_db, settings=settings)


@pytest.fixture
def smtp_settings() -> SMTPSettings:
    """Provide a complete SMTP configuration."""
    return SMTPSettings(
        host="smtp.example.com",
        username="mailer",
        password="secret",  # type: ignore[arg-type]
        from_email="noreply@example.com",
    )


class TestParseFilter:
    """Tests for listing filters."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "all"),
            ("all", "all"),
            ("unread", "unread"),
            ("enrollment", "enrollment"),
            ("system", "system"),
        ],
    )
    def test_accepted_values(self, value, expected) -> None:
        """Test recognized filters."""
        assert parse_filter(value) == expected

    def test_unknown_filter(self) -> None:
        """Test that unknown filters are rejected."""
        with pytest.raises(ValidationError):
            parse_filter("starred")


class TestAudience:
    """Tests for audience construction and resolution."""

    def test_explicit_ids_win_over_role(self) -> None:
        """Test that explicit ids take precedence."""
        audience = build_audience(role=UserRole.TRAINER, user_ids=["a", "b"])

        assert audience == ExplicitAudience(("a", "b"))

    def test_role_audience(self) -> None:
        """Test role-only audience."""
        assert build_audience(role=UserRole.TRAINER) == RoleAudience(UserRole.TRAINER)

    def test_empty_means_everyone(self) -> None:
        """Test that no filter targets all users."""
        assert build_audience(user_ids=[]) == AllUsers()

    @pytest.mark.asyncio
    async def test_explicit_ids_are_deduplicated_in_order(self, mock_db) -> None:
        """Test that explicit ids keep order and drop repeats without a query."""
        ids = await resolve_audience(mock_db, ExplicitAudience(("b", "a", "b", "c", "a")))

        assert ids == ["b", "a", "c"]
        mock_db.execute.assert_not_called()


class TestSend:
    """Tests for single sends."""

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, dispatcher, mock_db) -> None:
        """Test that blank messages never reach storage."""
        with pytest.raises(ValidationError):
            await dispatcher.send(str(uuid4()), "admin", "   ")

        mock_db.get.assert_not_called()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, dispatcher, mock_db) -> None:
        """Test that unknown types are rejected."""
        with pytest.raises(ValidationError):
            await dispatcher.send(str(uuid4()), "promotion", "Hello")

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, dispatcher, mock_db) -> None:
        """Test that a missing recipient is NotFound and nothing is added."""
        mock_db.get.return_value = None

        with pytest.raises(NotFoundError):
            await dispatcher.send(str(uuid4()), "admin", "Hello")

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_creates_one_row(self, dispatcher, mock_db) -> None:
        """Test that a send adds and commits exactly one notification."""
        recipient_id = str(uuid4())
        mock_db.get.return_value = MagicMock(id=recipient_id)

        notification = await dispatcher.send(recipient_id, "admin", "Maintenance tonight")

        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited_once()
        assert notification.recipient_id == recipient_id
        assert notification.type == "admin"
        assert notification.is_read is False

    @pytest.mark.asyncio
    async def test_send_without_commit_joins_caller_transaction(self, dispatcher, mock_db) -> None:
        """Test that commit=False leaves the transaction to the caller."""
        mock_db.get.return_value = MagicMock()

        await dispatcher.send(str(uuid4()), "system", "Approved", commit=False)

        mock_db.flush.assert_awaited_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_flush_failure_is_database_error(self, dispatcher, mock_db) -> None:
        """Test that storage failures surface as DatabaseError."""
        mock_db.get.return_value = MagicMock()
        mock_db.flush.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))

        with pytest.raises(DatabaseError):
            await dispatcher.send(str(uuid4()), "admin", "Hello")

        mock_db.rollback.assert_awaited_once()


class TestBroadcast:
    """Tests for broadcasts."""

    @pytest.mark.asyncio
    async def test_failures_are_reported_per_recipient(self, dispatcher, mock_db) -> None:
        """Test that an unknown recipient does not stop the broadcast."""
        known = MagicMock()
        mock_db.get.side_effect = [known, None, known]

        result = await dispatcher.broadcast(
            ExplicitAudience(("u1", "ghost", "u3")),
            "admin",
            "Platform update",
        )

        assert result.recipient_count == 3
        assert result.sent_count == 2
        assert [n.recipient_id for n in result.notifications] == ["u1", "u3"]
        assert [f.recipient_id for f in result.failed] == ["ghost"]

    @pytest.mark.asyncio
    async def test_invalid_content_fails_before_resolving(self, dispatcher, mock_db) -> None:
        """Test that validation happens once, up front."""
        with pytest.raises(ValidationError):
            await dispatcher.broadcast(AllUsers(), "admin", "")

        mock_db.execute.assert_not_called()


class TestOwnership:
    """Tests for recipient-only operations."""

    @pytest.mark.asyncio
    async def test_mark_read_by_other_user(self, dispatcher, mock_db) -> None:
        """Test that only the recipient can mark as read."""
        mock_db.get.return_value = MagicMock(recipient_id="owner", is_read=False)

        with pytest.raises(ForbiddenError):
            await dispatcher.mark_read(str(uuid4()), "intruder")

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, dispatcher, mock_db) -> None:
        """Test that marking a missing notification is NotFound."""
        mock_db.get.return_value = None

        with pytest.raises(NotFoundError):
            await dispatcher.mark_read(str(uuid4()), "owner")

    @pytest.mark.asyncio
    async def test_mark_read_already_read_is_noop(self, dispatcher, mock_db) -> None:
        """Test idempotence of mark_read."""
        notification = MagicMock(recipient_id="owner", is_read=True)
        mock_db.get.return_value = notification

        result = await dispatcher.mark_read(str(uuid4()), "owner")

        assert result is notification
        mock_db.execute.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, dispatcher, mock_db) -> None:
        """Test that deleting a missing notification succeeds."""
        mock_db.get.return_value = None

        await dispatcher.delete(str(uuid4()), "owner")

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_by_other_user(self, dispatcher, mock_db) -> None:
        """Test that only the recipient can delete."""
        mock_db.get.return_value = MagicMock(recipient_id="owner")

        with pytest.raises(ForbiddenError):
            await dispatcher.delete(str(uuid4()), "intruder")

        mock_db.execute.assert_not_called()


class TestChannels:
    """Tests for delivery channels."""

    @pytest.mark.asyncio
    async def test_in_app_failure_result(self, mock_db) -> None:
        """Test that flush errors become a failed result."""
        mock_db.flush.side_effect = OperationalError("INSERT", {}, Exception("locked"))
        channel = InAppChannel(mock_db)

        result = await channel.send(NotificationPayload("admin", "Hi", "u1"))

        assert result.status == DeliveryStatus.FAILED
        assert "error" in result.metadata

    @pytest.mark.asyncio
    async def test_email_skipped_when_not_configured(self) -> None:
        """Test that email is skipped without SMTP settings."""
        channel = EmailChannel(SMTPSettings(host=None))

        result = await channel.send(
            NotificationPayload("enrollment", "Enrolled", "u1", recipient_email="a@example.com")
        )

        assert result.status == DeliveryStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_email_skipped_without_address(self, smtp_settings) -> None:
        """Test that email is skipped without a recipient address."""
        result = await EmailChannel(smtp_settings).send(
            NotificationPayload("enrollment", "Enrolled", "u1")
        )

        assert result.status == DeliveryStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_email_sent(self, smtp_settings) -> None:
        """Test a successful SMTP send with the meeting link in both parts."""
        payload = NotificationPayload(
            "enrollment",
            'You have successfully enrolled in "Python Basics"',
            "u1",
            title="Enrollment confirmed",
            recipient_email="learner@example.com",
            data={"meeting_link": "https://meet.example.com/abc"},
        )

        with patch(
            "livetrain.infrastructure.notifications.channels.email.aiosmtplib.send",
            new=AsyncMock(),
        ) as mock_send:
            result = await EmailChannel(smtp_settings).send(payload)

        assert result.succeeded
        message = mock_send.call_args.args[0]
        assert message["To"] == "learner@example.com"
        assert message["Subject"] == "Enrollment confirmed"
        plain, html = message.get_payload()
        assert "https://meet.example.com/abc" in plain.get_payload(decode=True).decode()
        assert "&quot;Python Basics&quot;" in html.get_payload(decode=True).decode()

    @pytest.mark.asyncio
    async def test_email_smtp_error_is_failure(self, smtp_settings) -> None:
        """Test that SMTP errors do not raise."""
        with patch(
            "livetrain.infrastructure.notifications.channels.email.aiosmtplib.send",
            new=AsyncMock(side_effect=aiosmtplib.SMTPException("refused")),
        ):
            result = await EmailChannel(smtp_settings).send(
                NotificationPayload("enrollment", "Hi", "u1", recipient_email="a@example.com")
            )

        assert result.status == DeliveryStatus.FAILED
