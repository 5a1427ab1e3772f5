#!/usr/bin/env python3
"""
PageTrainer - Incremental discovery engine for web security crawlers

Main entry point.
"""

import logging
import click
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@click.group()
@click.version_option(version='1.0.0', prog_name='PageTrainer')
def cli():
    """PageTrainer - discover auditable surface from scan responses"""
    pass


@cli.command()
@click.argument('url')
@click.option('--config', 'config_name', default='default',
              type=click.Choice(['default', 'development', 'testing', 'production']),
              help='Configuration profile')
@click.option('--pages', type=int, help='Maximum pages to audit')
@click.option('--link-limit', type=int, help='Maximum distinct URLs to fetch (0 = unlimited)')
@click.option('--max-trainings', type=int, help='Maximum trainings per URL')
@click.option('--redundant', '-r', multiple=True, help='Redundant path pattern (regex)')
@click.option('--exclude', '-x', multiple=True, help='Exclusion pattern (regex)')
@click.option('--no-fingerprint', is_flag=True, help='Disable platform fingerprinting')
@click.option('--output', '-o', help='Write results as JSON to this file')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def train(url, config_name, pages, link_limit, max_trainings, redundant, exclude, no_fingerprint, output, verbose):
    """Crawl URL and report every page training reveals."""
    import asyncio
    import json
    from pagetrainer.config import config
    from pagetrainer.scanner.core.engine import TrainingEngine, ScanConfig

    level = 'DEBUG' if verbose else config[config_name].LOG_LEVEL
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    options = ScanConfig.from_config(config_name, url=url)
    if pages is not None:
        options.max_pages = pages
    if link_limit is not None:
        options.link_count_limit = link_limit
    if max_trainings is not None:
        options.max_trainings_per_url = max_trainings
    if redundant:
        options.redundant_patterns.extend(redundant)
    if exclude:
        options.exclude_patterns.extend(exclude)
    if no_fingerprint:
        options.fingerprint = False

    click.echo(f"Target: {url}")
    click.echo("-" * 50)

    def on_page(page):
        click.secho(
            f"  [+] {page.method} {page.url}: {len(page.forms)} forms, "
            f"{len(page.links)} links, {len(page.cookies)} cookies",
            fg='green'
        )
        if page.platforms:
            click.echo(f"      platforms: {', '.join(page.platforms)}")

    engine = TrainingEngine(config=options, page_callback=on_page)
    results = asyncio.run(engine.scan(url))

    click.echo("-" * 50)
    click.echo(f"Status: {results['status']}")
    if results['error']:
        click.secho(f"Error: {results['error']}", fg='red', err=True)
    click.echo(f"Pages audited: {results['crawl'].get('pages_audited', 0)}")
    click.echo(f"Pages trained: {len(results['trained_pages'])}")

    if output:
        with open(output, 'w') as f:
            json.dump(results, f, indent=2)
        click.echo(f"Results saved to: {output}")


if __name__ == '__main__':
    cli()
