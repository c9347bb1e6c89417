import argparse
import logging
import signal
import sys
from pathlib import Path

from PyQt6 import QtCore as qtcore, QtGui as qtgui, QtWidgets as qt
import pyqtgraph as pg

import spectrascan as spec

log = logging.getLogger('spectrascan')


class App(qt.QWidget):

    DEFAULT_FMIN = 0
    DEFAULT_FMAX = 500_000
    AVERAGE_FILE = 'average_plot.f'
    ALIGNMENTS = {
        'Strict': 'strict',
        'Pad': 'pad',
        'Resample': 'resample'}

    def __init__(
            self, fmin: float = DEFAULT_FMIN, fmax: float = DEFAULT_FMAX,
            align: str = 'strict', strict: bool = False):
        super().__init__()
        self.spectra = []
        self.curves = []
        self.average = None
        self.strict = strict
        self.saveDir = Path.cwd()

        vbox = qt.QVBoxLayout()
        vbox.setContentsMargins(0, 0, 0, 0)
        vbox.addWidget(self.spectrumWidget())
        vbox.addWidget(self.controls(fmin, fmax, align))

        self.setLayout(vbox)
        self.setWindowTitle('Frequency Spectrum')
        self.resize(1800, 900)
        self.show()

    def setSpectra(self, spectra):
        """Replace the set of spectra and recompute the average."""
        pw = self.spectrumPlotWidget
        for curve in self.curves:
            pw.removeItem(curve)
        self.spectra = list(spectra)
        n = len(self.spectra)
        self.curves = [
            pw.plot(pen=pg.intColor(i, hues=n), name=s.label)
            for i, s in enumerate(self.spectra)]
        self.recompute()

    def recompute(self, *_):
        self.average = None
        if self.spectra:
            align = self.alignCombo.currentData()
            try:
                self.average = spec.average(self.spectra, align)
            except spec.SpectrumError as exc:
                qt.QMessageBox.critical(self, 'Error', str(exc))
        self.plot()

    def plot(self, *_):
        fmin = self.fmin.value()
        fmax = self.fmax.value()
        for curve, spectrum in zip(self.curves, self.spectra):
            curve.setData(*spec.band(spectrum, fmin, fmax))
        if self.average is not None:
            self.averagePlot.setData(*spec.band(self.average, fmin, fmax))
        else:
            self.averagePlot.clear()

    def loadFolder(self, folder):
        try:
            spectra, failures = spec.scan_folder(folder, self.strict)
        except spec.SpectrumError as exc:
            qt.QMessageBox.critical(self, 'Error', str(exc))
            return
        if failures:
            msg = '\n'.join(f'{path.name}: {exc}' for path, exc in failures)
            qt.QMessageBox.warning(self, 'Skipped files', msg)
        self.setSpectra(spectra)

    def openFolder(self):
        path = qt.QFileDialog.getExistingDirectory(
            self, 'Open folder', str(self.saveDir))
        if path:
            self.saveDir = Path(path)
            self.loadFolder(path)

    def saveAverage(self):
        if self.average is None:
            return
        path = Path(self.AVERAGE_FILE)
        try:
            spec.write_spectrum(path, self.average)
        except OSError as exc:
            qt.QMessageBox.critical(self, 'Error', str(exc))
        else:
            log.info('Saved average to %s', path.resolve())

    def run(self) -> int:
        """Run the Qt event loop until the window is closed."""
        qApp = qtgui.QGuiApplication.instance()
        signal.signal(signal.SIGINT, lambda *args: self.close())
        # Let the interpreter run regularly to handle signals.
        timer = qtcore.QTimer(self)
        timer.timeout.connect(lambda: None)
        timer.start(100)
        return qApp.exec()

    def spectrumWidget(self) -> qt.QWidget:
        self.spectrumPlotWidget = pw = pg.PlotWidget()
        pw.showGrid(True, True, 0.8)
        pw.setLabel('left', 'Magnitude')
        pw.setLabel('bottom', 'Frequency', units='Hz')
        pw.addLegend()
        self.averagePlot = pw.plot(pen=pg.mkPen('w', width=2), name='Average')
        self.averagePlot.setZValue(10)
        return pw

    def controls(self, fmin: float, fmax: float, align: str) -> qt.QWidget:
        topWidget = qt.QWidget()
        vbox = qt.QVBoxLayout()
        topWidget.setLayout(vbox)

        self.fmin = pg.SpinBox(
            value=fmin, step=100, bounds=[0, None], suffix='Hz', siPrefix=True)
        self.fmin.sigValueChanging.connect(self.plot)
        self.fmax = pg.SpinBox(
            value=fmax, step=100, bounds=[0, None], suffix='Hz', siPrefix=True)
        self.fmax.sigValueChanging.connect(self.plot)

        self.alignCombo = qt.QComboBox()
        for text, value in self.ALIGNMENTS.items():
            self.alignCombo.addItem(text, value)
        self.alignCombo.setCurrentIndex(
            list(self.ALIGNMENTS.values()).index(align))
        self.alignCombo.currentIndexChanged.connect(self.recompute)

        openButton = qt.QPushButton('Open folder...')
        openButton.setShortcut('Ctrl+O')
        openButton.setToolTip('Ctrl+O')
        openButton.clicked.connect(self.openFolder)

        saveButton = qt.QPushButton('Save average plot')
        saveButton.setShortcut('S')
        saveButton.setToolTip('<Key S>')
        saveButton.clicked.connect(self.saveAverage)

        exitButton = qt.QPushButton('Exit')
        exitButton.setShortcut('Ctrl+Q')
        exitButton.setToolTip('Ctrl+Q')
        exitButton.clicked.connect(self.close)

        hbox = qt.QHBoxLayout()
        hbox.addWidget(openButton)
        hbox.addStretch(1)
        hbox.addWidget(qt.QLabel('Min: '))
        hbox.addWidget(self.fmin)
        hbox.addSpacing(32)
        hbox.addWidget(qt.QLabel('Max: '))
        hbox.addWidget(self.fmax)
        hbox.addSpacing(32)
        hbox.addWidget(qt.QLabel('Alignment: '))
        hbox.addWidget(self.alignCombo)
        hbox.addStretch(1)
        hbox.addWidget(saveButton)
        hbox.addWidget(exitButton)
        vbox.addLayout(hbox)

        return topWidget


def main():
    parser = argparse.ArgumentParser(
        prog='spectrascan',
        description='Overlay the frequency spectra of WAV files '
        'and stored spectra, together with their average.')
    parser.add_argument(
        'folder', nargs='?',
        help='folder with .wav and .f files to load')
    parser.add_argument(
        '--fmin', type=float, default=App.DEFAULT_FMIN,
        help='lowest frequency to show [Hz]')
    parser.add_argument(
        '--fmax', type=float, default=App.DEFAULT_FMAX,
        help='highest frequency to show [Hz]')
    parser.add_argument(
        '--align', choices=spec.ALIGNMENTS, default='strict',
        help='how to average spectra with different frequency axes')
    parser.add_argument(
        '--strict', action='store_true',
        help='abort loading on the first unreadable file')
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='log debug messages')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    _ = qt.QApplication(sys.argv[:1])
    app = App(args.fmin, args.fmax, args.align, args.strict)
    if args.folder:
        app.loadFolder(args.folder)
    sys.exit(app.run())


if __name__ == '__main__':
    main()
