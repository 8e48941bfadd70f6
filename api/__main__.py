"""Command line interface for running the API server."""
import asyncio
import logging
import signal
import uvicorn

from config import settings_conf
from database import init_db, close as db_close

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

server = None
should_exit = False

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global should_exit
    logger.info("Shutdown signal received. Cleaning up...")
    should_exit = True
    if server:
        server.stop()

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""
    
    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 8000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level="info"
        )
        self.server = uvicorn.Server(self.config)
    
    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()
    
    def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main():
    """Initialize the database and run the API server."""
    global server
    
    try:
        logger.info("Initializing database...")
        await init_db()
        
        server = UvicornServer(
            host=settings_conf['api_host'],
            port=settings_conf['api_port']
        )
        
        # Uvicorn installs its own handlers while serving; these cover startup
        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)
        
        if not should_exit:
            await server.run()
        
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        logger.info("Closing database connections...")
        await db_close()
        logger.info("Cleanup complete.")

if __name__ == "__main__":
    # Use uvloop if available for better performance
    try:
        import uvloop
        uvloop.install()
    except ImportError:
        pass
    
    asyncio.run(main())
