"""
FHE Engine Tests
================
BFV encryption of single load values.
"""

import pytest

from grid_ledger.core.fhe_engine import EncryptedLoad, GridLoadFHE


@pytest.fixture(scope="module")
def engine():
    """Private engine (has secret key)"""
    return GridLoadFHE()


@pytest.fixture(scope="module")
def public_engine(engine):
    return GridLoadFHE.from_context(engine.get_public_context())


class TestGridLoadFHE:

    def test_engine_creation(self, engine):
        """Test engine creation"""
        assert engine.is_private()
        info = engine.get_info()
        assert info['scheme'] == 'BFV'
        assert info['has_secret_key'] is True
        assert engine.max_value == 1032193 // 2 - 1

    def test_encrypt_decrypt(self, engine):
        """Test encrypt decrypt"""
        encrypted = engine.encrypt_load(600)
        assert isinstance(encrypted, EncryptedLoad)
        assert engine.decrypt_load(encrypted) == 600

    def test_public_context_encrypts_but_cannot_decrypt(self, engine, public_engine):
        """Test public context encrypts but cannot decrypt"""
        assert not public_engine.is_private()
        encrypted = public_engine.encrypt_load(1234)

        with pytest.raises(ValueError):
            public_engine.decrypt_load(encrypted)
        assert engine.decrypt_load(encrypted) == 1234

    def test_boundary_values(self, engine):
        """Test boundary values"""
        for value in (0, engine.max_value):
            assert engine.decrypt_load(engine.encrypt_load(value)) == value

    @pytest.mark.parametrize("value", [-1, 1032193, True, 1.5, "600"])
    def test_rejects_unencryptable(self, engine, value):
        """Test rejects unencryptable"""
        with pytest.raises(ValueError):
            engine.encrypt_load(value)

    def test_tampered_ciphertext_detected(self, engine):
        """Test tampered ciphertext detected"""
        encrypted = engine.encrypt_load(42)
        tampered = EncryptedLoad(
            ciphertext=encrypted.ciphertext[:-1] + bytes([encrypted.ciphertext[-1] ^ 1]),
            checksum=encrypted.checksum,
            created_at=encrypted.created_at,
        )
        with pytest.raises(ValueError):
            engine.decrypt_load(tampered)

    def test_serialized_form(self, engine):
        """Test serialized form"""
        encrypted = engine.encrypt_load(7)
        restored = EncryptedLoad.from_dict(encrypted.to_dict())

        assert restored.checksum == encrypted.checksum
        assert engine.decrypt_load(restored) == 7
        assert encrypted.get_size_kb() > 0
