"""Desktop launcher: serve the clinic app locally and open it in the browser."""
import logging
import os
import sys
import threading
import webbrowser

if getattr(sys, 'frozen', False):
    sys.path.insert(0, getattr(sys, '_MEIPASS', os.path.dirname(sys.executable)))
else:
    sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from dental_clinic.app import create_app

logger = logging.getLogger('dental_clinic.start')

HOST = os.environ.get('HOST', '127.0.0.1')
PORT = int(os.environ.get('PORT', 8080))


def main():
    app = create_app()
    url = f'http://127.0.0.1:{PORT}/'
    logger.info('%s running at %s', app.config['CLINIC_NAME'], url)
    if not os.environ.get('NO_BROWSER'):
        threading.Timer(1.5, webbrowser.open, args=(url,)).start()
    # the reloader would run the app, and open the browser, twice
    app.run(host=HOST, port=PORT, debug=False, use_reloader=False, threaded=True)


if __name__ == '__main__':
    main()
