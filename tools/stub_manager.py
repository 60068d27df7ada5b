"""Stand-alone accelerator manager stub: grants requests, finishes data descriptions."""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional, Sequence

from acclink.core.exceptions import ChannelIOError, MessageDecodeError
from acclink.core.types import MsgType, TaskMessage
from acclink.protocol import codec
from acclink.transport.framing import pack_frame, read_frame_async


async def handle_client(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    max_frame_size: Optional[int] = None,
) -> None:
    peer = writer.get_extra_info("peername")
    print(f"[connect] {peer}")
    try:
        while True:
            payload = await read_frame_async(reader.readexactly, max_frame_size)
            try:
                message = codec.decode(payload)
            except MessageDecodeError as e:
                print(f"[error] {e}")
                continue
            blocks = ", ".join(
                f"{b.partition_id}:{b.path or '-'}@{b.offset}+{b.size}" for b in message.data
            )
            print(f"[recv] {message.type.name} acc_id={message.acc_id!r} data=[{blocks}]")

            if message.type == MsgType.ACCREQUEST:
                reply = TaskMessage(type=MsgType.ACCGRANT, acc_id=message.acc_id)
            else:
                reply = TaskMessage(type=MsgType.ACCFINISH, acc_id=message.acc_id)
            writer.write(pack_frame(codec.encode(reply)))
            await writer.drain()
    except asyncio.IncompleteReadError as e:
        if e.partial:
            print(f"[error] incomplete frame; client sent {len(e.partial)}/{e.expected} bytes")
    except ChannelIOError as e:
        print(f"[error] {e}")
    finally:
        writer.close()
        await writer.wait_closed()
        print(f"[done] {peer}")


async def main(host: str = "127.0.0.1", port: int = 1027, max_frame_size: Optional[int] = None) -> None:
    async def _handle(reader, writer):
        await handle_client(reader, writer, max_frame_size)

    server = await asyncio.start_server(_handle, host, port)
    addr = ", ".join(str(sock.getsockname()) for sock in server.sockets or [])
    print(f"[listening] {addr}")
    async with server:
        await server.serve_forever()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("port", nargs="?", type=int, default=1027, help="TCP port to listen on")
    parser.add_argument("--host", default="127.0.0.1", help="Address to bind")
    parser.add_argument("--max-frame-size", type=int, help="Drop clients announcing larger frames")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    try:
        asyncio.run(main(host=args.host, port=args.port, max_frame_size=args.max_frame_size))
    except KeyboardInterrupt:
        print("[shutdown]")
