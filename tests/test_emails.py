import pytest

from qrraffle.app.core.emails import email_domain, normalize_email


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Fulano.Algo@NAVA.com.br", "fulanoalgo@nava.com.br"),
        ("fulano_algo@nava.com.br", "fulanoalgo@nava.com.br"),
        ("fulano.algo@nava.com.br", "fulanoalgo@nava.com.br"),
        ("f.u_l.a_n.o@nava.com.br", "fulano@nava.com.br"),
        ("fulano@my.sub_domain.com", "fulano@my.sub_domain.com"),
        ("NoAtSign.Here_", "noatsign.here_"),
        ("", ""),
    ],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["Fulano.Algo@NAVA.com.br", "a_b.c@x.io", "plain", "UPPER@CASE.ORG", "._@dots.com"],
)
def test_normalize_email_is_idempotent(raw):
    once = normalize_email(raw)
    assert normalize_email(once) == once


def test_variants_share_identity():
    variants = ["Fulano.Algo@nava.com.br", "fulano_algo@NAVA.COM.BR", "FULANOALGO@nava.com.br"]
    assert len({normalize_email(v) for v in variants}) == 1


def test_email_domain():
    assert email_domain("someone@Nava.com.br") == "nava.com.br"
    assert email_domain("no-domain") is None
