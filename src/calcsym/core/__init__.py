"""Expression trees and the transformations on them."""
