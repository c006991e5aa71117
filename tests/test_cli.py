from adapters.custodians.token_session import mask_token
from cli.main import rotation_notice
from core.domain.events import RefreshTokenRotated


def test_rotation_notice_masks_new_token():
    token = "rt-0123456789-secret-suffix"
    event = RefreshTokenRotated(api_url="https://custodian.example/api", old_refresh_token="T", new_refresh_token=token)

    notice = rotation_notice(event)

    assert token not in notice
    assert mask_token(token) in notice


def test_mask_token_hides_short_tokens_entirely():
    assert mask_token("short") == "*****"
    assert mask_token("abcdefghijklmnop") == "abcde...lmnop"
