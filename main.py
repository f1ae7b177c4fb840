import argparse
import asyncio
import logging
import os
import sys

from nvr_rpc import config
from nvr_rpc.errors import NVRError
from nvr_rpc.service import DualProtocolService

logger = logging.getLogger("NVRClient")


async def run(args, password):
    service = DualProtocolService(args.url, timeout=args.timeout)
    try:
        result = await service.authenticate(args.user, password)
        if not result.rpc.success:
            logger.error(f"❌ RPC login failed: {result.rpc.error}")
            return 1
        if not result.http_cgi.success:
            logger.warning(f"CGI digest authentication failed: {result.http_cgi.error}")

        rpc = service.rpc
        info = await rpc.system.get_system_info()
        logger.info(f"Device: {info.device_type or 'Unknown'} ({info.serial_number or 'no serial'}), "
                    f"firmware {info.software_version or 'Unknown'}")

        cameras = await rpc.camera.get_all_cameras()
        for cam in cameras:
            logger.info(f"  [{cam.unique_channel:>2}] {cam.name:<24} {cam.device_info.address:<16} "
                        f"{'enabled' if cam.enable else 'disabled':<9} {cam.show_status or '-'}")
        return 0
    except NVRError as e:
        logger.error(f"Critical Error: {e}")
        return 1
    finally:
        await service.disconnect()
        service.rpc.close()


def main():
    parser = argparse.ArgumentParser(description="List the cameras of a network video recorder")
    parser.add_argument("--url", default=config.DEFAULT_BASE_URL, help="Recorder base URL")
    parser.add_argument("--user", default=config.DEFAULT_USERNAME, help="Account name")
    parser.add_argument("--password", default=None, help="Password (or set NVR_PASSWORD)")
    parser.add_argument("--timeout", type=float, default=config.HTTP_TIMEOUT, help="HTTP timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    password = args.password or os.environ.get("NVR_PASSWORD")
    if password is None:
        parser.error("a password is required (--password or NVR_PASSWORD)")

    sys.exit(asyncio.run(run(args, password)))


if __name__ == "__main__":
    main()
