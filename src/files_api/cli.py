# cli.py
import click
import logging

from files_api.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)

@click.group()
def cli():
    """CLI commands for the Files API"""
    pass

# Worker commands live in src/thumbnail_workers/cli.py

@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", type=int, default=8000, help="Port to listen on")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes")
def serve(host, port, reload):
    """Run the Files API with uvicorn"""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    click.echo(f"Starting Files API in {settings.deployment_mode} mode on {host}:{port}...")
    uvicorn.run("files_api.main:create_app", factory=True, host=host, port=port, reload=reload)

@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Deployment Mode: {settings.deployment_mode}")
    print(f"  MongoDB URI: {settings.mongodb_uri}")
    print(f"  MongoDB Database: {settings.mongodb_db}")
    print(f"  Redis URL: {settings.redis_url}")
    print(f"  Storage Directory: {settings.storage_dir}")
    print(f"  Session TTL: {settings.session_ttl_seconds}s")
    print(f"  Page Size: {settings.page_size}")
    print(f"  Duplicate Names: {settings.duplicate_names}")
    print(f"  Thumbnail Widths: {settings.thumbnail_widths}")
    print(f"  AWS Region: {settings.aws_region}")
    print(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    print(f"  SQS Queue Name: {settings.sqs_queue_name}")
    print(f"  SQS Queue URL: {settings.sqs_queue_url}")

if __name__ == "__main__":
    cli()
