"""Command line interface for account administration."""
import argparse
import asyncio
import logging
import sys

from database import init_db, close as db_close
from errors import MarketError
from . import AuthManager

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

async def create_admin(name: str, email: str, password: str) -> int:
    """Create an admin account."""
    await init_db()
    try:
        user = await AuthManager().create_user(name, email, password, 'ADMIN')
        logger.info(f"Created admin {user['email']} ({user['id']})")
        return 0
    except MarketError as e:
        logger.error(f"Could not create admin: {e}")
        return 1
    finally:
        await db_close()

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog='python -m auth')
    commands = parser.add_subparsers(dest='command', required=True)
    
    admin = commands.add_parser('create-admin', help='Create an admin account')
    admin.add_argument('--name', default='Admin')
    admin.add_argument('--email', required=True)
    admin.add_argument('--password', required=True)
    
    args = parser.parse_args(argv)
    if args.command == 'create-admin':
        return asyncio.run(create_admin(args.name, args.email, args.password))
    return 1

if __name__ == "__main__":
    sys.exit(main())
