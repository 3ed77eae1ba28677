# rysteria

Building blocks for a QUIC-based proxy protocol, in pure Python with no
third-party dependencies.

## Modules

- `rysteria.protocol` – QUIC variable-length integers (`varint_len`,
  `varint_encode`, `varint_read`), TCP proxy request and response framing
  (`write_tcp_request`, `read_tcp_request`, `write_tcp_response`,
  `read_tcp_response`), random alphanumeric padding (`gen_padding` and the
  `*_padding` helpers), the protocol's constants, and `ProtocolError`, a
  `ValueError` whose `kind` attribute names what was wrong with the input.
- `rysteria.messages` – `UdpMessage` with `header_size()`, `size()` and
  `to_bytes()`, `parse_udp_message`, and the `AuthRequest` and
  `AuthResponse` header models (`from_headers`, `cc_rx_header_value`,
  `padding`).
- `rysteria.frag` – `frag_udp_message` splits a `UdpMessage` into pieces no
  larger than a given size; `Defragger.feed` puts them back together, one
  packet at a time; `new_frag_packet_id` picks a packet ID in 1..65535.
- `rysteria.pacer` – `Pacer`, a token-bucket pacer. Times are integer
  nanoseconds as from `time.monotonic_ns()`.
- `rysteria.brutal` – `BrutalSender`, a fixed-rate congestion controller that
  counts acks and losses per second over five seconds and raises its rate by
  the observed ack rate (never below 0.8); `BrutalControllerFactory` builds
  one per connection; `SharedRate` is a thread-safe integer that the sender
  updates with its effective rate. Setting `RYSTERIA_BRUTAL_DEBUG=true` in
  the environment prints ack-rate reports to standard error.
- `rysteria.atomictime` – `AtomicTime`, a thread-safe Unix timestamp in
  seconds with `update()`, `load()` and `is_idle(idle_secs)`.

## Install

```
pip install .
```

## Example

```python
from rysteria.protocol import varint_read, write_tcp_request, read_tcp_request
from rysteria.messages import UdpMessage, parse_udp_message
from rysteria.frag import Defragger, frag_udp_message, new_frag_packet_id

wire = write_tcp_request("example.com:443")
frame_type, n = varint_read(wire)
addr, consumed = read_tcp_request(wire[n:])

msg = UdpMessage(session_id=1, pkt_id=0, frag_id=0, frag_count=1,
                 addr="127.0.0.1:53", data=b"x" * 3000)
assert parse_udp_message(msg.to_bytes()) == msg

msg.pkt_id = new_frag_packet_id()
defragger = Defragger()
for piece in frag_udp_message(msg, 1200):
    whole = defragger.feed(piece)
assert whole.data == msg.data
```

## What this package does not do

It holds no networking code: there is no QUIC or HTTP/3 transport, no proxy
server or client, no authentication backend and no command-line program.
The congestion controller is a standalone object driven by calls to its
`on_*` methods; nothing here switches a live connection from one controller
to another.

## Tests

```
pip install .[test]
pytest
```