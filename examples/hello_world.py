"""
request_pipeline — Hello World

Requests pass through an ordered chain of steps before reaching your
handler. The first step that refuses stops the chain, and every failure
becomes a response in one place.
"""

import asyncio

from request_pipeline import (
    Authenticator,
    ConflictError,
    FixedWindowRateLimiter,
    HmacTokenVerifier,
    InMemoryCacheStore,
    InMemoryPrincipalDirectory,
    Pipeline,
    Principal,
    Request,
    Response,
)
from request_pipeline.steps import AuthenticateStep, AuthorizeStep, RateLimitStep

# ─── Your data (anything — completely decoupled from the framework) ───

USERS = {"1": {"id": "1", "name": "Jo"}}


async def main():
    # ──────────────────────────────────────
    #  1. Collaborators
    # ──────────────────────────────────────
    verifier = HmacTokenVerifier("change-me-to-a-long-random-secret")
    directory = InMemoryPrincipalDirectory(
        [
            Principal(id="alice", roles={"admin"}),
            Principal(id="bob", roles={"reader"}),
        ]
    )
    cache = InMemoryCacheStore()

    # ──────────────────────────────────────
    #  2. Build the pipeline (order = chain order)
    # ──────────────────────────────────────
    pipeline = Pipeline(
        steps=[
            RateLimitStep(FixedWindowRateLimiter(max_requests=3, window_seconds=60)),
            AuthenticateStep(Authenticator(verifier, directory)),
            AuthorizeStep(),
        ],
        cache=cache,
    )

    @pipeline.route("GET", "/users/1", requires_auth=True)
    async def get_user(ctx):
        async def load():
            print("  (cache miss, loading user 1)")
            return USERS["1"]

        return await ctx.cache.namespace("users").get_or_set("1", load, ttl=30)

    @pipeline.route("POST", "/principals", required_role="admin", rate_limited=False)
    def create_principal(ctx):
        data = ctx.request.json()
        directory.create(Principal(id=data["id"], roles=data.get("roles", [])))
        return Response(status=201, body={"id": data["id"]})

    @pipeline.route("GET", "/health", rate_limited=False)
    def health(ctx):
        return {"status": "ok"}

    alice = {"Authorization": f"Bearer {verifier.issue('alice')}"}
    bob = {"Authorization": f"Bearer {verifier.issue('bob')}"}

    # ──────────────────────────────────────
    #  3. Anonymous vs authenticated
    # ──────────────────────────────────────
    print("=== Authentication ===\n")

    response = await pipeline.handle(Request("GET", "/users/1", client="10.0.0.1"))
    print(f"  no token:   {response.status} {response.body}")

    for _ in range(2):
        response = await pipeline.handle(
            Request("GET", "/users/1", headers=alice, client="10.0.0.2")
        )
        print(f"  with token: {response.status} {response.body}")

    # ──────────────────────────────────────
    #  4. Roles and business errors
    # ──────────────────────────────────────
    print("\n=== Authorization ===\n")

    body = '{"id": "carol"}'
    response = await pipeline.handle(Request("POST", "/principals", headers=bob, body=body))
    print(f"  bob:         {response.status} {response.body}")
    response = await pipeline.handle(Request("POST", "/principals", headers=alice, body=body))
    print(f"  alice:       {response.status} {response.body}")
    response = await pipeline.handle(Request("POST", "/principals", headers=alice, body=body))
    print(f"  alice again: {response.status} {response.body}")

    # ──────────────────────────────────────
    #  5. Rate limit exhaustion
    # ──────────────────────────────────────
    print("\n=== Rate limit exhaustion ===\n")

    for i in range(4):
        response = await pipeline.handle(
            Request("GET", "/users/1", headers=alice, client="10.0.0.3")
        )
        retry = response.headers.get("Retry-After")
        print(f"  Request #{i + 1}: {response.status}" + (f" retry after {retry}s" if retry else ""))

    print("\nPipeline JSON: ", pipeline.export())

    try:
        directory.create(Principal(id="alice"))
    except ConflictError as exc:
        print(f"\nDirect call raised {exc.kind}: {exc.message}")


if __name__ == "__main__":
    asyncio.run(main())
