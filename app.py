import io
import logging
import mimetypes
import os
from datetime import datetime

from flask import Flask, current_app, jsonify, request
from PIL import Image, UnidentifiedImageError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from bill_splitting_logic import calculate_snapshot
from bill_store import BillNotFound, BillStore, BillStoreError
from config import Config
from demo import seed_demo_command
from extensions import db, migrate
from models import Receipt
from parse_model import extract_receipt_data
from settlement import get_settlement_strategy
from snapshot import BillSnapshot

logger = logging.getLogger(__name__)

ALLOWED_MIMETYPES = ['image/jpeg', 'image/png', 'image/webp']


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        db.create_all()

    register_routes(app)
    app.cli.add_command(seed_demo_command)
    return app


def _strategy_from_request():
    name = request.args.get('strategy') or current_app.config['SETTLEMENT_STRATEGY']
    return get_settlement_strategy(name, honor_host_paid=current_app.config['HONOR_HOST_PAID'])


def _store_error(e):
    return jsonify({'success': False, 'error': str(e), 'retryable': e.retryable}), 503


def register_routes(app):

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'healthy'})

    # --------- Settlement ---------

    @app.route('/api/calculate', methods=['POST'])
    def calculate_bill():
        """Run the settlement engine on a posted bill snapshot"""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Bill data is required'}), 400

        try:
            snapshot = BillSnapshot.from_dict(data)
            strategy = get_settlement_strategy(
                data.get('strategy') or request.args.get('strategy') or app.config['SETTLEMENT_STRATEGY'],
                honor_host_paid=app.config['HONOR_HOST_PAID'],
            )
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        result = calculate_snapshot(snapshot, strategy)
        return jsonify({'success': True, 'result': result.to_dict()}), 200

    # --------- Bills ---------

    @app.route('/api/bills', methods=['GET'])
    def list_bills():
        try:
            history = BillStore().list_bills()
        except BillStoreError as e:
            return _store_error(e)
        return jsonify(history), 200

    @app.route('/api/bills', methods=['POST'])
    def save_bill():
        """Create or fully replace a bill"""
        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict):
            return jsonify({'success': False, 'error': 'Request body must be an object'}), 400
        data = body.get('data')
        if data is None:
            return jsonify({'error': 'Bill data is required'}), 400

        try:
            snapshot = BillSnapshot.from_dict(data)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        try:
            bill_id = BillStore().save(body.get('id'), snapshot)
        except BillStoreError as e:
            return _store_error(e)

        return jsonify({'id': bill_id, 'success': True}), 200

    @app.route('/api/bills/<bill_id>', methods=['GET'])
    def get_bill(bill_id):
        try:
            stored = BillStore().load(bill_id)
        except BillNotFound:
            return jsonify({'error': 'Bill not found'}), 404
        except BillStoreError as e:
            return _store_error(e)
        return jsonify(stored.to_dict()), 200

    @app.route('/api/bills/<bill_id>', methods=['DELETE'])
    def delete_bill(bill_id):
        try:
            BillStore().delete(bill_id)
        except BillNotFound:
            return jsonify({'error': 'Bill not found'}), 404
        except BillStoreError as e:
            return _store_error(e)
        return jsonify({'success': True}), 200

    @app.route('/api/bills/<bill_id>/settlement', methods=['GET'])
    def get_bill_settlement(bill_id):
        """Settlement figures for a stored bill"""
        try:
            stored = BillStore().load(bill_id)
            strategy = _strategy_from_request()
        except BillNotFound:
            return jsonify({'error': 'Bill not found'}), 404
        except BillStoreError as e:
            return _store_error(e)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        result = calculate_snapshot(stored.snapshot, strategy)
        return jsonify({'success': True, 'id': bill_id, 'result': result.to_dict()}), 200

    # --------- Receipts ---------

    @app.route('/api/process-receipt', methods=['POST'])
    def process_receipt():
        if 'image' not in request.files:
            return jsonify({'error': 'No image file provided'}), 400

        file = request.files['image']

        if file.filename == '':
            return jsonify({'error': 'No file selected'}), 400

        mime_type, _ = mimetypes.guess_type(file.filename)

        if mime_type not in ALLOWED_MIMETYPES:
            return jsonify({'error': f'Unsupported file type: {mime_type}. Must be an image.'}), 415

        try:
            image_bytes = file.read()
            temp_image = Image.open(io.BytesIO(image_bytes)).convert('RGB')
        except (UnidentifiedImageError, OSError):
            return jsonify({'error': 'File is not a readable image'}), 415

        try:
            timestamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S_%f')
            filename = secure_filename(f"receipt_{timestamp}.jpg")
            filepath = os.path.join(app.config['UPLOAD_FOLDER'], filename)
            temp_image.save(filepath)

            result = extract_receipt_data(filepath)

            receipt = Receipt(
                raw_text=result.get('raw_text'),
                raw_data={
                    'items': result.get('items', []),
                    'global_charges': result.get('global_charges', []),
                },
                image_path=filepath
            )
            db.session.add(receipt)
            db.session.commit()

            return jsonify({
                'success': True,
                'data': {
                    'items': result.get('items', []),
                    'global_charges': result.get('global_charges', []),
                },
                'receipt_id': receipt.id
            }), 200

        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to store extracted receipt")
            return jsonify({
                'success': False,
                'error': 'Could not store receipt.',
                'retryable': True
            }), 503
        except Exception:
            logger.exception("Receipt extraction failed")
            return jsonify({
                'success': False,
                'error': 'Internal Server Error during image processing.'
            }), 500


# Run the app
if __name__ == "__main__":
    create_app().run(debug=True, host='0.0.0.0', port=5000)
