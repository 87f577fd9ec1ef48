#!/usr/bin/env python3
"""
Video Worker - HTTP entry point
Receives Pub/Sub push messages for newly uploaded raw videos
"""

import asyncio
import base64
import binascii
from typing import Optional

from flask import Flask, jsonify, request

from video_worker import config
from video_worker.errors import InvalidVideoNameError, VideoAlreadyProcessingError
from video_worker.logger import logger
from video_worker.pubsub_consumer import parse_upload_message
from video_worker.video_processor import VideoProcessor


def parse_push_envelope(envelope) -> str:
    """Extract the uploaded object name from a Pub/Sub push envelope"""
    if not isinstance(envelope, dict) or not isinstance(envelope.get('message'), dict):
        raise InvalidVideoNameError('invalid Pub/Sub message format')
    
    pubsub_message = envelope['message']
    if 'data' not in pubsub_message:
        raise InvalidVideoNameError('no data in Pub/Sub message')
    
    try:
        data = base64.b64decode(pubsub_message['data'])
    except (binascii.Error, TypeError, ValueError) as e:
        raise InvalidVideoNameError(f'invalid message payload: {e}') from e
    
    return parse_upload_message(data)


def create_app(processor: Optional[VideoProcessor] = None) -> Flask:
    app = Flask(__name__)
    processor = processor or VideoProcessor(config.WorkerConfig.from_env())
    # Files are always written to these folders, create them before serving
    processor.setup_directories()
    app.config['VIDEO_PROCESSOR'] = processor
    
    @app.route('/process-video', methods=['POST'])
    def process_video():
        """Receive and serve Pub/Sub messages."""
        envelope = request.get_json(silent=True)
        if not envelope:
            msg = 'no Pub/Sub message received'
            logger.error(msg)
            return jsonify({'error': f'Bad Request: {msg}'}), 400
        
        try:
            input_file_name = parse_push_envelope(envelope)
        except InvalidVideoNameError as e:
            logger.error(f'Rejected message: {e}')
            return jsonify({'error': f'Bad Request: {e}'}), 400
        
        logger.info(f'Received video: {input_file_name}')
        
        try:
            result = asyncio.run(processor.process_video(input_file_name))
        except VideoAlreadyProcessingError as e:
            logger.warning(str(e))
            return jsonify({'error': str(e)}), 409
        except Exception as e:
            return jsonify({'error': f'Processing failed: {e}'}), 500
        
        return jsonify({
            'status': 'Processing finished successfully',
            'raw': result.raw_name,
            'processed': result.processed_name,
            'url': result.public_url,
        }), 200
    
    @app.route('/', methods=['GET'])
    def health():
        return jsonify({'status': 'healthy', 'service': 'video-worker'}), 200
    
    return app


def main():
    """Main entry point"""
    app = create_app()
    logger.info(f'Video worker listening on port {config.PORT}')
    app.run(host='0.0.0.0', port=config.PORT)


if __name__ == '__main__':
    main()
