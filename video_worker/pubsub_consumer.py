#!/usr/bin/env python3
"""
Video Worker - streaming pull entry point
Consumes upload notifications from a Pub/Sub subscription
"""

import asyncio
import json
import signal
import sys
from typing import Callable

from google.cloud import pubsub_v1

from video_worker import config
from video_worker.errors import InvalidVideoNameError, VideoAlreadyProcessingError
from video_worker.logger import logger
from video_worker.video_processor import VideoProcessor, validate_video_name


def parse_upload_message(data: bytes) -> str:
    """Object name carried by a Cloud Storage upload notification"""
    try:
        payload = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidVideoNameError(f'invalid message payload: {e}') from e
    
    if not isinstance(payload, dict) or not payload.get('name'):
        raise InvalidVideoNameError('missing filename')
    
    return validate_video_name(payload['name'])


class PubSubConsumer:
    """Pub/Sub consumer for raw video uploads"""
    
    def __init__(
        self,
        callback: Callable[[str], None],
        project_id: str = config.GCP_PROJECT_ID,
        subscription_id: str = config.PUBSUB_SUBSCRIPTION_ID,
        subscriber: pubsub_v1.SubscriberClient = None
    ):
        self.subscriber = subscriber or pubsub_v1.SubscriberClient()
        self.subscription_path = self.subscriber.subscription_path(project_id, subscription_id)
        self.callback = callback
    
    def message_callback(self, message) -> None:
        """Run the pipeline for the video named in an upload notification"""
        logger.info(f'Received message: {message.message_id}')
        
        try:
            name = parse_upload_message(message.data)
        except InvalidVideoNameError as e:
            # redelivery cannot fix a malformed payload, drop it
            logger.error(f'Discarding message {message.message_id}: {e}')
            message.ack()
            return
        
        try:
            self.callback(name)
        except VideoAlreadyProcessingError:
            logger.warning(f'{name} is already being processed here, message {message.message_id} will be redelivered')
            message.nack()
            return
        except Exception as e:
            logger.error(f'Processing {name} from message {message.message_id} failed: {e}')
            message.nack()
            return
        
        message.ack()
        logger.info(f'Message {message.message_id} acknowledged, {name} processed')
    
    def start_consuming(self) -> None:
        """Start consuming messages from Pub/Sub"""
        logger.info(f'Starting to consume messages from {self.subscription_path}')
        
        streaming_pull_future = self.subscriber.subscribe(
            self.subscription_path,
            callback=self.message_callback
        )
        
        logger.info('Listening for messages...')
        
        try:
            # Block and wait for messages
            streaming_pull_future.result()
        except KeyboardInterrupt:
            logger.info('Received interrupt signal, stopping...')
            streaming_pull_future.cancel()
        except Exception as e:
            logger.error(f'Subscriber error: {e}')
            streaming_pull_future.cancel()
            raise


def make_job_handler(processor: VideoProcessor) -> Callable[[str], None]:
    """Callback running the whole pipeline for one raw video"""
    
    def process_job(name: str) -> None:
        asyncio.run(processor.process_video(name))
    
    return process_job


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f'Received signal {signum}, initiating graceful shutdown...')
    sys.exit(0)


def main():
    """Main entry point"""
    logger.info('=' * 60)
    logger.info('Video Worker - Pub/Sub Consumer Starting')
    logger.info('=' * 60)
    
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    
    try:
        processor = VideoProcessor(config.WorkerConfig.from_env())
        processor.setup_directories()
        
        consumer = PubSubConsumer(callback=make_job_handler(processor))
        consumer.start_consuming()
        
    except Exception as e:
        logger.error(f'Worker failed: {e}')
        sys.exit(1)


if __name__ == '__main__':
    main()
