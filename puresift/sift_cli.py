#!/usr/bin/env python3
"""
Pure SIFT CLI
Command-line interface for SIFT feature extraction and matching without OpenCV.

Usage:
    python pure_sift.py extract image.png [options]
    python pure_sift.py match left.png right.png [options]
    python pure_sift.py match stereo_pair.png [options]
"""

import argparse
import logging
import os
import sys
import time

from .descriptor import NormType
from .image_io import read_grayscale, split_horizontally, write_image
from .matcher import SiftMatcher
from .params import NeighborhoodType, SiftParameters
from .sift import SiftDetector
from .visualization import draw_features, draw_matches

# command line flag -> SiftParameters attribute
PARAMETER_FLAGS = (
    ('--nh-type', 'nh_type', str, 'Neighborhood for 3D peak detection (8, 10, 18, 26)'),
    ('--sigma-s', 'sigma_s', float, 'Nominal sampling scale'),
    ('--sigma-0', 'sigma_0', float, 'Base scale at level 0'),
    ('--octaves', 'num_octaves', int, 'Number of scale space octaves (P)'),
    ('--levels', 'num_levels', int, 'Scale levels per octave (Q)'),
    ('--t-mag', 't_mag', float, 'Minimum detection magnitude'),
    ('--t-peak', 't_peak', float, 'Minimum peak magnitude'),
    ('--t-extrm', 't_extrm', float, 'Minimum neighborhood difference'),
    ('--n-refine', 'n_refine', int, 'Maximum position refinement steps'),
    ('--rho-max', 'rho_max', float, 'Maximum principal curvature ratio (3..10)'),
    ('--n-orient', 'n_orient', int, 'Number of orientation bins'),
    ('--n-smooth', 'n_smooth', int, 'Orientation histogram smoothing steps'),
    ('--t-dom-or', 't_dom_or', float, 'Minimum relative value of dominant orientations'),
    ('--n-spat', 'n_spat', int, 'Number of spatial descriptor bins'),
    ('--n-angl', 'n_angl', int, 'Number of angular descriptor bins'),
    ('--t-fclip', 't_fclip', float, 'Maximum normalized feature value'),
    ('--s-fscale', 's_fscale', float, 'Feature integer conversion scale'),
    ('--s-desc', 's_desc', float, 'Descriptor size factor'),
    ('--workers', 'workers', int, 'Worker threads (default: sequential)'),
)


def print_banner():
    """Print banner."""
    print("\nPure SIFT - feature detection and matching (No OpenCV)\n")


def build_parser():
    parser = argparse.ArgumentParser(
        description='Detect and match SIFT features using a pure Python implementation'
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    extract = subparsers.add_parser('extract', help='Detect SIFT features in one image')
    extract.add_argument('image', help='Input image')
    extract.add_argument('-o', '--output', default=None,
                         help='Write a feature visualization to this path')
    extract.add_argument('--list', type=int, default=10, metavar='N',
                         help='Number of strongest features to list (default: 10)')
    extract.add_argument('--feature-scale', type=float, default=1.0,
                         help='Marker size relative to feature scale (default: 1.0)')
    _add_parameter_flags(extract)

    match = subparsers.add_parser('match', help='Match SIFT features between two images')
    match.add_argument('images', nargs='+',
                       help='Two images, or one image holding a left/right pair')
    match.add_argument('--norm', default='L2', choices=[n.name for n in NormType],
                       help='Distance norm (default: L2)')
    match.add_argument('--rmax', type=float, default=0.8,
                       help='Maximum ratio between 1st/2nd match distance (default: 0.8)')
    match.add_argument('--cross-check', action='store_true',
                       help='Keep only mutual best matches')
    match.add_argument('-o', '--output', default=None,
                       help='Write a match visualization to this path')
    match.add_argument('--show', type=int, default=25, metavar='N',
                       help='Number of matches to list and draw (default: 25)')
    _add_parameter_flags(match)
    return parser


def _add_parameter_flags(parser):
    group = parser.add_argument_group('SIFT parameters')
    group.add_argument('--params', default=None, metavar='JSON',
                       help='Load SIFT parameters from a JSON file')
    for flag, dest, kind, text in PARAMETER_FLAGS:
        group.add_argument(flag, dest=dest, type=kind, default=None, help=text)


def parameters_from_args(args):
    """Combine the optional JSON parameter file with individual flags."""
    params = SiftParameters.load(args.params) if args.params else SiftParameters()
    changes = {dest: getattr(args, dest) for _, dest, _, _ in PARAMETER_FLAGS
               if getattr(args, dest) is not None}
    if 'nh_type' in changes:
        changes['nh_type'] = NeighborhoodType.parse(changes['nh_type'])
    return params.replace(**changes) if changes else params


def run_extract(args, params):
    image = read_grayscale(args.image)
    print(f"Image: {args.image} ({image.shape[1]}x{image.shape[0]})")

    start_time = time.time()
    features = SiftDetector(image, params).get_sift_features()
    elapsed_time = time.time() - start_time

    print(f"SIFT features found: {len(features)} ({elapsed_time:.2f} seconds)")
    for i, d in enumerate(features[:args.list]):
        print(f"  {i + 1:3d}: {d}")

    if args.output:
        _ensure_dir(args.output)
        write_image(args.output, draw_features(image, features, args.feature_scale))
        print(f"Features saved to: {args.output}")
    return 0


def run_match(args, params):
    if len(args.images) == 1:
        image_a, image_b = split_horizontally(read_grayscale(args.images[0]))
        print(f"Image: {args.images[0]} (split into left/right halves)")
    elif len(args.images) == 2:
        image_a = read_grayscale(args.images[0])
        image_b = read_grayscale(args.images[1])
    else:
        print("Error: Need one or two images to match")
        return 1

    start_time = time.time()
    features_a = SiftDetector(image_a, params).get_sift_features()
    features_b = SiftDetector(image_b, params).get_sift_features()
    print(f"SIFT features found in first image: {len(features_a)}")
    print(f"SIFT features found in second image: {len(features_b)}")

    matcher = SiftMatcher(args.norm, args.rmax, cross_check=args.cross_check,
                          workers=params.workers)
    matches = matcher.match(features_a, features_b)
    elapsed_time = time.time() - start_time
    print(f"Matches found: {len(matches)} ({elapsed_time:.2f} seconds)")
    for i, m in enumerate(matches[:args.show]):
        print(f"  {i + 1:3d}: d={m.distance:.1f}  [{m.descriptor1}]  <->  [{m.descriptor2}]")

    if args.output:
        _ensure_dir(args.output)
        write_image(args.output, draw_matches(image_a, image_b, matches, args.show))
        print(f"Matched features saved to: {args.output}")
    return 0


def _ensure_dir(path):
    output_dir = os.path.dirname(path)
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir)


def main(argv=None):
    """Main function for CLI."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    print_banner()

    images = [args.image] if args.command == 'extract' else args.images
    for img_path in images:
        if not os.path.exists(img_path):
            print(f"Error: Image not found: {img_path}")
            return 1

    try:
        params = parameters_from_args(args)
    except (OSError, ValueError) as e:
        print(f"Error: Invalid SIFT parameters: {str(e)}")
        return 1

    try:
        if args.command == 'extract':
            return run_extract(args, params)
        return run_match(args, params)
    except (IOError, ValueError) as e:
        print(f"Error: {str(e)}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
