import pytest

from app.security.pii_cipher import PiiCipher, looks_encrypted

STORE_A = "6f1c7d4e-0000-4000-8000-00000000000a"
STORE_B = "6f1c7d4e-0000-4000-8000-00000000000b"


@pytest.fixture
def cipher():
    return PiiCipher("unit-secret", "unit-salt", n=1024)


def test_round_trip(cipher):
    token = cipher.encrypt("jane@example.com", STORE_A)
    assert token != "jane@example.com"
    assert looks_encrypted(token)
    assert cipher.decrypt(token, STORE_A) == "jane@example.com"


def test_format_is_iv_tag_ciphertext(cipher):
    iv_hex, tag_hex, data_hex = cipher.encrypt("555-0100", STORE_A).split(":")
    assert len(iv_hex) == 32
    assert len(tag_hex) == 32
    assert len(data_hex) == len("555-0100") * 2


def test_fresh_iv_per_call(cipher):
    assert cipher.encrypt("same", STORE_A) != cipher.encrypt("same", STORE_A)


def test_other_store_cannot_decrypt(cipher):
    token = cipher.encrypt("secret value", STORE_A)
    assert cipher.decrypt(token, STORE_B) is None


def test_tampered_ciphertext_returns_none(cipher):
    iv_hex, tag_hex, data_hex = cipher.encrypt("secret value", STORE_A).split(":")
    flipped = format(int(data_hex[:2], 16) ^ 0x01, "02x") + data_hex[2:]
    assert cipher.decrypt(f"{iv_hex}:{tag_hex}:{flipped}", STORE_A) is None


def test_empty_and_none_pass_through(cipher):
    assert cipher.encrypt("", STORE_A) == ""
    assert cipher.encrypt(None, STORE_A) is None
    assert cipher.decrypt("", STORE_A) == ""
    assert cipher.decrypt(None, STORE_A) is None


def test_plaintext_legacy_value_returned_as_is(cipher):
    assert cipher.decrypt("jane@example.com", STORE_A) == "jane@example.com"


def test_shape_check_covers_the_whole_value(cipher):
    token = cipher.encrypt("jane@example.com", STORE_A)
    assert not looks_encrypted(token + "\n")
    assert not looks_encrypted("aa:bb:cc\n")
    assert not looks_encrypted("aa:bb:cc:dd")
    # not shaped like ciphertext, so treated as legacy plaintext
    assert cipher.decrypt("aa:bb:cc\n", STORE_A) == "aa:bb:cc\n"


def test_encrypt_without_store_id_returns_none(cipher):
    assert cipher.encrypt("jane@example.com", "") is None
    assert cipher.encrypt("jane@example.com", None) is None


def test_missing_key_material_fails_closed():
    cipher = PiiCipher(None, None, n=1024)
    assert cipher.encrypt("jane@example.com", STORE_A) is None


def test_encrypt_fields_touches_only_pii(cipher):
    data = {"email": "jane@example.com", "phone": "555-0100", "firstName": "Jane", "plan": "gold", "age": 41}
    out = cipher.encrypt_fields(data, STORE_A)

    assert out["plan"] == "gold"
    assert out["age"] == 41
    for key in ("email", "phone", "firstName"):
        assert looks_encrypted(out[key])
    # input is not mutated
    assert data["email"] == "jane@example.com"

    assert cipher.decrypt_fields(out, STORE_A) == data


def test_fields_without_store_id_are_unchanged(cipher):
    data = {"email": "jane@example.com"}
    assert cipher.encrypt_fields(data, None) == data
    assert cipher.decrypt_fields(data, None) == data


def test_decrypt_fields_for_wrong_store_nulls_pii(cipher):
    out = cipher.encrypt_fields({"email": "jane@example.com", "note": "hi"}, STORE_A)
    back = cipher.decrypt_fields(out, STORE_B)
    assert back["email"] is None
    assert back["note"] == "hi"
