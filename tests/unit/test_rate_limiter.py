"""Unit tests for the daily question limit."""
import pytest
from unittest.mock import AsyncMock
from bzr_portal.services.rate_limiter import RateLimiter


@pytest.mark.unit
class TestRateLimiter:
    """Test cases for RateLimiter service."""

    @pytest.fixture
    def rate_limiter(self):
        """Create a RateLimiter instance."""
        return RateLimiter(max_questions=3)

    @pytest.mark.asyncio
    async def test_first_question_allowed(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that the first question of the day is allowed."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)
        mock_redis_client.get = AsyncMock(return_value=None)

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id)

        assert is_allowed is True
        assert error_msg is None
        assert retry_after is None
        mock_redis_client.setex.assert_called_once_with(
            f"rate_limit:daily_questions:{sample_user_id}", 86400, "1"
        )

    @pytest.mark.asyncio
    async def test_under_limit_allowed(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that questions under the limit are allowed."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)
        mock_redis_client.get = AsyncMock(return_value="2")
        mock_redis_client.incr = AsyncMock(return_value=3)

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id)

        assert is_allowed is True
        assert error_msg is None
        mock_redis_client.incr.assert_called_once()

    @pytest.mark.asyncio
    async def test_limit_exceeded(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that the fourth question is refused with a retry time."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)
        mock_redis_client.get = AsyncMock(return_value="3")
        mock_redis_client.ttl = AsyncMock(return_value=21600)  # 6 hours remaining

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id)

        assert is_allowed is False
        assert "dnevni limit od 3 pitanja" in error_msg
        assert "6 h" in error_msg
        assert retry_after == 21600

    @pytest.mark.asyncio
    async def test_pro_users_never_limited(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that pro users bypass Redis entirely."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id, "pro")

        assert is_allowed is True
        rate_limiter._get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_limit_resets(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that an expired window resets the counter."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)
        mock_redis_client.get = AsyncMock(return_value="3")
        mock_redis_client.ttl = AsyncMock(return_value=-1)  # Expired

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id)

        assert is_allowed is True
        assert error_msg is None
        mock_redis_client.setex.assert_called_once()  # Reset counter

    @pytest.mark.asyncio
    async def test_redis_failure_fails_open(self, rate_limiter, sample_user_id, mock_redis_client):
        """Test that Redis failure allows request (fail-open policy)."""
        rate_limiter._get_client = AsyncMock(return_value=mock_redis_client)
        mock_redis_client.get = AsyncMock(side_effect=Exception("Redis connection failed"))

        is_allowed, error_msg, retry_after = await rate_limiter.check_rate_limit(sample_user_id)

        # Should fail open - allow the request
        assert is_allowed is True
        assert error_msg is None
