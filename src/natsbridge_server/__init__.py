"""natsbridge HTTP server -- POST bodies in, NATS messages out.

Exposes two endpoints:
- POST /topics/{topic} -- publish the JSON body to {topic} (204)
- POST /requests/{topic} -- request on {topic} and relay the reply (200)

Run with ``python -m natsbridge_server`` or the ``natsbridge`` script.
"""
