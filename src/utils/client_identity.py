from fastapi import Request

ANONYMOUS_CLIENT = "anonymous"


def client_id_from_request(request: Request, trust_forwarded_for: bool = False) -> str:
    """Opaque identity used to scope rate limiting to one requester."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return ANONYMOUS_CLIENT
