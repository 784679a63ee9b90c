import pytest

from oncoshare.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password


class TestHashPassword:
    def test_hash_is_not_the_password(self):
        hashed = hash_password("secret123", rounds=4)
        assert hashed != "secret123"
        assert hashed.startswith("$2")

    def test_same_password_gets_a_fresh_salt(self):
        assert hash_password("secret123", rounds=4) != hash_password("secret123", rounds=4)

    def test_cost_factor_is_embedded(self):
        assert hash_password("secret123", rounds=5).split("$")[2] == "05"

    def test_default_cost_comes_from_settings(self):
        # BCRYPT_ROUNDS=4 in the test environment
        assert hash_password("secret123").split("$")[2] == "04"


class TestVerifyPassword:
    def test_correct_password(self):
        assert verify_password("secret123", hash_password("secret123", rounds=4)) is True

    def test_wrong_password(self):
        assert verify_password("secret124", hash_password("secret123", rounds=4)) is False

    @pytest.mark.parametrize("stored", ["", "not-a-bcrypt-hash"])
    def test_unusable_stored_hash(self, stored):
        assert verify_password("secret123", stored) is False

    def test_input_over_bcrypt_limit_is_rejected(self):
        base = "a" * MAX_PASSWORD_BYTES
        hashed = hash_password(base, rounds=4)
        assert verify_password(base, hashed) is True
        assert verify_password(base + "b", hashed) is False
