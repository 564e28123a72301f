from payments.checksum import (
    ChecksumSigner,
    checksum_envelope,
    generate_checksum,
    php_json_encode,
    verify_checksum,
)
from payments.crypto import decrypt_aes, sha256_hex

KEY = "Kx9/aB&cD+eF=gH17654321"
FIELDS = {
    "merchant_id": "7654321",
    "ORDER_ID": "1718000000123456",
    "TXN_AMOUNT": "250.00",
    "CALLBACK_URL": "https://api.radiant.test/api/payments/sadad/bookings/callback/",
}


def test_php_json_encode_escapes_slashes_and_keeps_unicode():
    assert php_json_encode({"a": "x/y"}) == '{"a":"x\\/y"}'
    assert php_json_encode({"n": "قطر", "q": 1}) == '{"n":"قطر","q":1}'


def test_envelope_wraps_post_data_and_secret():
    env = checksum_envelope({"a": "1"}, "s&k")
    assert env == {"postData": {"a": "1"}, "secretKey": "s&k"}
    assert checksum_envelope({}, "s&k", urlencode_secret=True)["secretKey"] == "s%26k"


def test_fixed_salt_is_deterministic():
    json_str = php_json_encode(FIELDS)
    first = generate_checksum(json_str, KEY, salt="AbcD")
    assert first == generate_checksum(json_str, KEY, salt="AbcD")
    assert first != generate_checksum(json_str, KEY, salt="Zz00")


def test_checksum_layout_is_digest_plus_salt():
    json_str = php_json_encode(FIELDS)
    plain = decrypt_aes(generate_checksum(json_str, KEY, salt="AbcD"), KEY)
    assert plain == sha256_hex(json_str + "|AbcD") + "AbcD"


def test_round_trip_and_tamper_detection():
    json_str = php_json_encode(FIELDS)
    checksum = generate_checksum(json_str, KEY)
    assert verify_checksum(json_str, checksum, KEY)

    tampered = php_json_encode({**FIELDS, "TXN_AMOUNT": "1.00"})
    assert not verify_checksum(tampered, checksum, KEY)
    assert not verify_checksum(json_str, checksum, "another-key-0000")


def test_verify_tolerates_garbage():
    json_str = php_json_encode(FIELDS)
    assert not verify_checksum(json_str, "", KEY)
    assert not verify_checksum(json_str, "not base64 !!", KEY)
    assert not verify_checksum(json_str, "QUJD", KEY)


def test_signer_outgoing_and_callback_secrets_differ():
    signer = ChecksumSigner("7654321", "Kx9/aB&cD+eF=gH1")

    outgoing = signer.sign(FIELDS)
    assert signer.verify(FIELDS, outgoing, urlencode_secret=False)
    # callbacks are checked against the urlencoded secret
    assert not signer.verify(FIELDS, outgoing)

    callback = signer.sign(FIELDS, urlencode_secret=True)
    assert signer.verify(FIELDS, callback)


def test_signer_uses_injected_salt():
    signer = ChecksumSigner("7654321", "Kx9/aB&cD+eF=gH1", salt_factory=lambda n: "AbcD")
    assert signer.sign(FIELDS) == signer.sign(FIELDS)
    assert decrypt_aes(signer.sign(FIELDS), signer.key()).endswith("AbcD")


# Known-answer vectors: merchant 7654321, secret "Kx9/aB&cD+eF=gH1", salt "AbcD".
# Checkout signing wraps the raw secret; callbacks wrap the urlencoded one.
CHECKOUT_VECTOR = (
    "YSWXfhNYRRPMbYiMVSYaE0BveWZHIVF09L/zGQ5BdDgT3gYiSDYPB5Him2QYTU4qYfx8+hfRnjUDTb6i+CIw48ufgqHPdLxMAx2Vhyq0kf0="
)
CALLBACK_VECTOR = (
    "4Y60ihJYLPDWHB8n+DCFSNlkhl/uxXkz34+LBGa/awHgKKkryS5DZdEUGi3ic8jcIiMeM29Kx0VL8kfybAH+noG/DWj+mDbEfo/7cq7EmvM="
)


def test_checkout_checksum_matches_known_vector():
    signer = ChecksumSigner("7654321", "Kx9/aB&cD+eF=gH1", salt_factory=lambda n: "AbcD")

    assert signer.canonical_json(FIELDS) == (
        '{"postData":{"merchant_id":"7654321","ORDER_ID":"1718000000123456","TXN_AMOUNT":"250.00",'
        '"CALLBACK_URL":"https:\\/\\/api.radiant.test\\/api\\/payments\\/sadad\\/bookings\\/callback\\/"},'
        '"secretKey":"Kx9\\/aB&cD+eF=gH1"}'
    )
    assert signer.sign(FIELDS) == CHECKOUT_VECTOR
    assert signer.verify(FIELDS, CHECKOUT_VECTOR, urlencode_secret=False)


def test_callback_checksum_matches_known_vector():
    signer = ChecksumSigner("7654321", "Kx9/aB&cD+eF=gH1", salt_factory=lambda n: "AbcD")

    assert signer.key(urlencode_secret=True) == "Kx9%2FaB%26cD%2BeF%3DgH17654321"
    assert signer.sign(FIELDS, urlencode_secret=True) == CALLBACK_VECTOR
    assert signer.verify(FIELDS, CALLBACK_VECTOR)
    assert decrypt_aes(CALLBACK_VECTOR, signer.key(urlencode_secret=True)) == (
        "fd62270508c4893705b631bb3e9fc26707e28205e3b6d4b3d1ec4d29d8f866eaAbcD"
    )
