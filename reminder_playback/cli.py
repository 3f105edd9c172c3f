"""
CLI for running and manually testing the reminder engine
"""

import asyncio
import sys
from pathlib import Path

import click

from .config import ReminderEngineConfig
from .engine import ReminderEngine
from .errors import ReminderPlaybackError, VoiceSynthesisError
from .logging_utils import setup_logging, get_logger
from .models import State
from .speech import Pyttsx3Synthesizer, SpeechLoopDriver
from .voice_api import VoiceSynthesisClient

logger = get_logger(__name__)


@click.group()
@click.option('--log-level', default=None, help='Log level (defaults to LOG_LEVEL)')
@click.option('--log-format', default=None, type=click.Choice(['text', 'json', 'simple']), help='Log format')
@click.pass_context
def cli(ctx, log_level, log_format):
    """Reminder Playback CLI - run and test voice reminders"""
    config = ReminderEngineConfig.from_env()
    if log_level:
        config.log_level = log_level
    if log_format:
        config.log_format = log_format
    setup_logging(log_level=config.log_level, log_format=config.log_format)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.option('--host', default='127.0.0.1', help='Bind address')
@click.option('--port', default=8000, type=int, help='Bind port')
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP service with the clock poller"""
    import uvicorn
    from .api import create_app

    config = ctx.obj['config']
    app = create_app(ReminderEngine(config))
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command()
@click.argument('message')
@click.option('--out', '-o', type=click.Path(dir_okay=False, path_type=Path), required=True,
              help='Where to write the audio')
@click.option('--api-key', default=None, help='Voice service key (defaults to ELEVENLABS_API_KEY)')
@click.pass_context
def synthesize(ctx, message, out, api_key):
    """Render MESSAGE with the remote voice service"""
    config = ctx.obj['config']
    key = api_key or config.voice.api_key
    if not key:
        click.echo("No voice service key configured")
        sys.exit(1)

    client = VoiceSynthesisClient(config.voice)
    try:
        audio = client.synthesize(message, key)
    except VoiceSynthesisError as e:
        click.echo(f"Synthesis failed: {e}")
        sys.exit(1)
    finally:
        client.close()

    out.write_bytes(audio)
    click.echo(f"Wrote {len(audio)} bytes to {out}")


@cli.command()
@click.argument('message')
@click.option('--duration', '-d', default=10.0, type=float, help='Seconds to keep repeating')
@click.pass_context
def speak(ctx, message, duration):
    """Repeat MESSAGE with on-device speech, like a ringing alarm"""
    config = ctx.obj['config']

    async def _run():
        synthesizer = Pyttsx3Synthesizer(config.speech)
        driver = SpeechLoopDriver(synthesizer, config.timings.speech_repeat_pause_s)
        driver.start(message, token=1)
        try:
            await asyncio.sleep(duration)
        finally:
            driver.cancel(1)
            synthesizer.close()
        return driver.utterance_count

    count = asyncio.run(_run())
    click.echo(f"Spoke {count} time(s)")


@cli.command()
@click.argument('time_of_day')
@click.argument('message')
@click.option('--ring-for', default=30.0, type=float, help='Seconds to ring before stopping')
@click.pass_context
def ring(ctx, time_of_day, message, ring_for):
    """Schedule MESSAGE at TIME_OF_DAY and wait in the foreground for it"""
    config = ctx.obj['config']

    async def _run():
        engine = ReminderEngine(config)
        try:
            alarm = await engine.create_alarm(time_of_day, message)
        except ReminderPlaybackError as e:
            click.echo(f"Could not create alarm: {e}")
            engine.shutdown()
            return False

        for notice in engine.active_notices():
            click.echo(f"Notice: {notice.message}")
        click.echo(f"Alarm {alarm.id} set for {alarm.scheduled_time} "
                   f"({'clip' if alarm.audio_source else 'system voice'}). Press Ctrl+C to cancel.")

        engine.start()
        try:
            while engine.state is State.IDLE:
                await asyncio.sleep(config.timings.poll_interval_s)
            click.echo(f"Ringing ({engine.session.strategy.value})...")
            await asyncio.sleep(ring_for)
            engine.stop()
        finally:
            engine.shutdown()
        return True

    try:
        ok = asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("\nCancelled")
        return
    if not ok:
        sys.exit(1)
    click.echo("Alarm stopped")


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration"""
    config = ctx.obj['config']

    click.echo("Reminder Playback Status:")
    click.echo(f"  Log level: {config.log_level}")
    click.echo(f"  Log format: {config.log_format}")
    click.echo(f"  Voice service: {'configured' if config.voice.api_key else 'not configured (system voice only)'}")
    click.echo(f"  Voice model: {config.voice.voice_model_id}")
    click.echo(f"  Poll interval: {config.timings.poll_interval_s}s")
    click.echo(f"  Speech repeat pause: {config.timings.speech_repeat_pause_s}s")
    click.echo(f"  Snooze: {config.timings.snooze_minutes} min")
    click.echo(f"  Persistence: {config.alarms_file if config.persist else 'disabled'}")


if __name__ == '__main__':
    cli()
