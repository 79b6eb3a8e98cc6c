def normalize_email(email: str) -> str:
    """Canonical comparison key for an e-mail address.

    Lower-cases the address and strips every ``.`` and ``_`` from the local
    part, so ``Fulano.Algo@NAVA.com.br`` and ``fulano_algo@nava.com.br`` both
    become ``fulanoalgo@nava.com.br``. The domain is left as is and no syntax
    validation is done. Input without ``@`` is only lower-cased.
    """
    lowered = email.lower()
    local, sep, domain = lowered.partition("@")
    if not sep:
        return lowered
    local = local.replace(".", "").replace("_", "")
    return f"{local}@{domain}"


def email_domain(email: str) -> str | None:
    _, sep, domain = email.partition("@")
    if not sep:
        return None
    return domain.lower()
