# FastAPI dependencies shared by the routers: session gating, rate limiting
# and access to the services stored on ``app.state``.
